import logging

from flask import Flask

from .config import Config
from .errors import BindError, CacheUnavailable, ConfigError, HandlerError, StartupError

__all__ = [
    "BindError",
    "CacheUnavailable",
    "Config",
    "ConfigError",
    "HandlerError",
    "StartupError",
    "create_app",
]

LOG = logging.getLogger()


def create_app(config: Config = None, cache_client=None) -> Flask:
    """
    Create the Flask app (also used for functional tests)
    """
    from .healthchecks import health_bp
    from .routing import register_error_handlers
    from .welcome import welcome_bp

    app = Flask(__name__)
    app.config["WELCOME"] = config or Config()
    if cache_client is not None:
        app.extensions["cache_client"] = cache_client

    app.register_blueprint(welcome_bp)
    app.register_blueprint(health_bp)
    register_error_handlers(app)
    return app
