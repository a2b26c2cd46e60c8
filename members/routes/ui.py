"""Provides Flask integration for the members user interface."""

import logging
from functools import wraps
from http import HTTPStatus as status
from typing import Any, Callable

from flask import Blueprint, Response, current_app, make_response, redirect, \
    render_template, request, url_for
from werkzeug.exceptions import BadRequest

from ..auth.session import MemberSession
from ..controllers import authentication, profile, registration, verification
from ..domain import Account, VerificationCode
from ..services import notify, util
from ..services.records import Records

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')


def _members() -> MemberSession:
    members: MemberSession = request.members
    return members


def _records() -> Records:
    return Records(code_ttl=int(current_app.config['VERIFICATION_CODE_TTL']))


def _send_verification(account: Account, code: VerificationCode) -> None:
    config = current_app.config
    url = url_for('ui.verify', code=code.code, _external=True)
    notify.send_verification(account, url,
                             host=config['SMTP_HOST'],
                             port=int(config['SMTP_PORT']),
                             sender=config['MAIL_FROM'])


def anonymous_only(func: Callable) -> Callable:
    """Redirect logged-in members to their profile."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if _members().has_authorization():
            return redirect(url_for('ui.edit_profile'),
                            code=status.SEE_OTHER)
        return func(*args, **kwargs)
    return wrapper


def login_required(func: Callable) -> Callable:
    """Send anonymous requests to the login page."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not _members().has_authorization():
            return redirect(url_for('ui.login', next_page=request.path),
                            code=status.SEE_OTHER)
        return func(*args, **kwargs)
    return wrapper


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks."""
    response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
    response.headers['X-Frame-Options'] = 'DENY'
    return response


@blueprint.route('/profile/verify', methods=['GET'])
def verify() -> Response:
    """Consume a verification code from an e-mailed link."""
    data, code, headers = verification.verify_profile(
        request.args.get('code'),
        _records()
    )
    if code != status.OK:
        raise BadRequest(data['error'])
    return make_response(render_template('members/verified.html', **data),
                         code, headers)


@blueprint.route('/profile/register', methods=['GET', 'POST'])
@anonymous_only
def register() -> Response:
    """Interface for creating new accounts."""
    data, code, headers = registration.register(
        request.method,
        request.form,
        _members(),
        _records(),
        url_for('ui.edit_profile'),
        username_max_length=int(current_app.config['USERNAME_MAX_LENGTH']),
        notify=_send_verification
    )
    if code == status.SEE_OTHER:
        return redirect(headers['Location'], code=code)
    return make_response(render_template('members/register.html', **data),
                         code, headers)


@blueprint.route('/profile/edit', methods=['GET', 'POST'])
@login_required
def edit_profile() -> Response:
    """Let the authorized member update their profile."""
    data, code, headers = profile.edit_profile(request.method, request.form,
                                               _members(), _records())
    if code == status.SEE_OTHER:
        return redirect(url_for('ui.edit_profile'), code=code)
    return make_response(render_template('members/edit.html', **data),
                         code, headers)


@blueprint.route('/profile/<string:guid>', methods=['GET'])
def view_profile(guid: str) -> Response:
    """Show a member's public profile."""
    data, code, headers = profile.view_profile(guid, _records())
    return make_response(render_template('members/profile.html', **data),
                         code, headers)


@blueprint.route('/login', methods=['GET', 'POST'])
@anonymous_only
def login() -> Response:
    """Members log in with a username or e-mail address and password."""
    default_next_page = current_app.config['DEFAULT_REDIRECT_URL']
    next_page = request.args.get('next_page', default_next_page)
    logger.debug('Request to log in, then redirect to %s', next_page)
    data, code, headers = authentication.login(request.method, request.form,
                                               _members(), _records(),
                                               request.remote_addr, next_page)
    if code == status.SEE_OTHER:
        return redirect(headers['Location'], code=code)
    return make_response(render_template('members/login.html', **data),
                         code, headers)


@blueprint.route('/logout', methods=['GET'])
def logout() -> Response:
    """Log out. The member cookie is cleared on the way out."""
    next_page = request.args.get('next_page', url_for('ui.login'))
    data, code, headers = authentication.logout(_members(), next_page)
    return redirect(headers['Location'], code=code)


@blueprint.route('/status', methods=['GET'])
def service_status() -> Response:
    """Report whether we can talk to the database."""
    if util.is_available():
        return make_response("OK", status.OK)
    return make_response("Unavailable", status.SERVICE_UNAVAILABLE)


@blueprint.route('/', defaults={'path': ''}, methods=['GET'])
@blueprint.route('/<path:path>', methods=['GET'])
def index(path: str) -> Response:
    """Send members to their profile, and everyone else to the login page."""
    if _members().has_authorization():
        return redirect(url_for('ui.edit_profile'), code=status.FOUND)
    return redirect(url_for('ui.login'), code=status.FOUND)
