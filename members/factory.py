"""Application factory for the members app."""

import logging
from typing import Any, Mapping, Optional

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException, Forbidden, Unauthorized, \
    BadRequest, MethodNotAllowed, InternalServerError, NotFound

from . import auth, commands
from .app_logging import setup_logger
from .domain import Account
from .routes import ui
from .services import Records, create_all, init_app as services_init_app

logger = logging.getLogger(__name__)


def _get_account(guid: str) -> Account:
    return Records().get_account_by_guid(guid)


def create_web_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Initialize and configure the members application.

    Parameters
    ----------
    config : mapping
        Overrides for the settings in :mod:`members.config`. These are
        applied before any extension reads them.
    """
    app = Flask('members')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)

    setup_logger(level=int(app.config['LOGLEVEL']),
                 json=bool(app.config['LOG_JSON']))

    services_init_app(app)
    auth.Auth(app, get_account=_get_account)  # Member session & cookie.
    app.register_blueprint(ui.blueprint)
    app.cli.add_command(commands.create_db)
    app.cli.add_command(commands.purge_codes)

    if app.config['CREATE_DB']:
        with app.app_context():
            create_all()

    register_error_handlers(app)
    logger.debug('Created members app')
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
