"""WSGI entrypoint: ``gunicorn -c gunicorn.conf.py wsgi:app``."""

from tokenauth import create_app

app = create_app()
