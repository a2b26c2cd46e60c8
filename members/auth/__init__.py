"""Provides tools for working with member authorization on requests."""

import logging
from typing import Optional

from flask import Flask, Response, current_app, request
from flask import session as client_session

from . import session
from .session import AccountLoader, MemberSession
from .. import domain
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def emit_cookie(response: Response,
                authorization: Optional[domain.Authorization],
                name: str, max_age: int = session.DEFAULT_LIFETIME,
                cookie_domain: Optional[str] = None,
                secure: bool = False) -> Response:
    """
    Set or clear the authorization cookie on a response.

    If there is a live authorization with a cookie payload, the cookie is set
    to expire with it, and never later than ``max_age`` seconds. Otherwise
    the cookie is actively cleared, so that a cookie from an earlier response
    cannot outlive a logout.
    """
    if authorization is None or authorization.cookie is None:
        response.delete_cookie(name, domain=cookie_domain, secure=secure,
                               httponly=True)
        return response
    params = dict(httponly=True, domain=cookie_domain)
    if secure:
        params.update({'secure': True, 'samesite': 'Lax'})
    response.set_cookie(name, authorization.cookie,
                        max_age=min(max_age, authorization.expires),
                        **params)
    return response


class Auth(object):
    """
    Attaches member authorization state to the request.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from members.auth import Auth


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_object('someapp.config')
          Auth(app)
          return app

    The current :class:`.MemberSession` is available as
    ``flask.request.members`` while the request is handled, and the
    authorization cookie is set or cleared on every response.
    """

    def __init__(self, app: Optional[Flask] = None,
                 get_account: Optional[AccountLoader] = None) -> None:
        """
        Initialize ``app``.

        Parameters
        ----------
        app : :class:`Flask`
        get_account : callable
            Resolves an authorized GUID to an account; see
            :meth:`.MemberSession.load`.

        """
        self.get_account = get_account
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Attach :meth:`.load_session` and :meth:`.emit_cookie` to the app.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        app.config.setdefault('MEMBERS_COOKIE_NAME', 'members')
        app.config.setdefault('MEMBERS_COOKIE_LIFETIME',
                              session.DEFAULT_LIFETIME)
        app.config.setdefault('MEMBERS_COOKIE_DOMAIN', None)
        app.config.setdefault('MEMBERS_COOKIE_SECURE', False)
        app.before_request(self.load_session)
        app.after_request(self.emit_cookie)

    def load_session(self) -> None:
        """Decode the authorization cookie, and attach the session."""
        config = current_app.config
        secret = config.get('JWT_SECRET')
        if not secret:
            raise ConfigurationError('Missing JWT_SECRET')
        cookie = request.cookies.get(config['MEMBERS_COOKIE_NAME'])
        request.members = MemberSession.load(
            cookie,
            secret,
            get_account=self.get_account,
            lifetime=int(config['MEMBERS_COOKIE_LIFETIME']),
            transitional_store=client_session
        )

    def emit_cookie(self, response: Response) -> Response:
        """Set or clear the authorization cookie on the outgoing response."""
        member_session: Optional[MemberSession] = \
            getattr(request, 'members', None)
        if member_session is None:  # Failed before the session was loaded.
            return response
        config = current_app.config
        return emit_cookie(
            response,
            member_session.get_authorization(),
            config['MEMBERS_COOKIE_NAME'],
            max_age=int(config['MEMBERS_COOKIE_LIFETIME']),
            cookie_domain=config['MEMBERS_COOKIE_DOMAIN'],
            secure=bool(config['MEMBERS_COOKIE_SECURE'])
        )
