"""Flask application factory."""

from __future__ import annotations

from flask import Flask

from tokenauth.core.config import BaseConfig, get_config, validate_config
from tokenauth.core.logger import configure_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """
    Build the auth service app.

    ``config`` defaults to the class chosen by ``APP_ENV``. An optional
    ``instance/config.py`` is layered on top before the token settings are
    validated.

    :raises RuntimeError: When the token configuration is unsafe for production.
    """
    app = Flask(__name__, instance_relative_config=instance_relative_config)
    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    validate_config(app.config)

    from tokenauth import api, cli
    from tokenauth.core import errors, extensions, logger

    for component in (extensions, logger, api, errors, cli):
        component.init_app(app)

    return app
