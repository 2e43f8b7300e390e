import os

wsgi_app = "wsgi:app"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Sync workers
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "30"))
graceful_timeout = 20

# Access log to stdout; application logs are JSON lines on the root handler
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
