"""Provides an app factory for the gatekeeper service."""

from typing import Any, Optional

from flask import Flask
from werkzeug.exceptions import BadRequest, MethodNotAllowed, NotFound

from . import routes
from .app_logging import setup_logger
from .domain import CredentialConfig
from .gate import Gate, jsonify_exception
from .services import AuthServerClient, SessionStore


def create_app(redis_client: Optional[Any] = None,
               **config: Any) -> Flask:
    """
    Initialize an instance of the gatekeeper service.

    Parameters
    ----------
    redis_client
        Optional; a Redis client to use for the session store instead of one
        created from the config.
    config
        Overrides for config parameters in :mod:`gatekeeper.config`.

    """
    app = Flask('gatekeeper')
    app.config.from_object('gatekeeper.config')
    app.config.update(config)
    setup_logger(app.config.get('LOG_LEVEL', 'INFO'))

    credentials = CredentialConfig.from_config(app.config)
    SessionStore.init_app(app, client=redis_client, config=credentials)
    AuthServerClient.init_app(app, config=credentials)
    Gate().init_app(app, config=credentials)

    app.register_blueprint(routes.blueprint)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    return app
