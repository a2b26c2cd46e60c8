"""
Controllers for logging members in and out.

Logging in mints a fresh authorization on the request's
:class:`.MemberSession`; the response boundary turns it into the member
cookie. Logging out clears the authorization, and with it the cookie.
"""

import logging
from http import HTTPStatus as status
from typing import Any, Dict, Optional, Tuple

from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from werkzeug.security import check_password_hash
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired

from .. import domain
from ..auth.session import MemberSession
from ..exceptions import AuthenticationFailed, NoSuchAccount, Unavailable
from ..services import util
from ..services.records import Records

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def good_next_page(next_page: Optional[str]) -> bool:
    """True if ``next_page`` is a local path we are willing to redirect to."""
    return bool(next_page) and next_page.startswith('/') \
        and not next_page.startswith('//')


def authenticate(records: Records, username_or_email: str,
                 password: str) -> domain.Account:
    """
    Check a member's credentials.

    Raises
    ------
    :class:`.AuthenticationFailed`
        No enabled account matches, the account has no local password, or the
        password is wrong.
    """
    try:
        if '@' in username_or_email:
            account = records.get_account_by_email(username_or_email)
        else:
            account = records.get_account_by_username(username_or_email)
    except NoSuchAccount as e:
        raise AuthenticationFailed('No such account') from e
    if not account.enabled:
        raise AuthenticationFailed('Account is disabled')
    if not account.password:
        raise AuthenticationFailed('Account has no local password')
    if not check_password_hash(account.password, password):
        raise AuthenticationFailed('Invalid password')
    return account


def login(method: str, form_data: MultiDict, session: MemberSession,
          records: Records, ip: Optional[str], next_page: str) -> ResponseData:
    """
    Provide the login form, and log the member in.

    Parameters
    ----------
    form_data : MultiDict
        Should include `username` and `password` data.
    session : :class:`.MemberSession`
    records : :class:`.Records`
    ip : str
        IP or hostname of client.
    next_page : str
        Page to which the member should be redirected upon login.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 303 (See Other) if all goes well.
    dict
        Headers to add to the response.

    """
    if not good_next_page(next_page):
        next_page = '/'
    if method == 'GET':
        logger.debug('Request for login form')
        return {'form': LoginForm(), 'next_page': next_page}, status.OK, {}

    logger.debug('Login form submitted')
    form = LoginForm(form_data)
    data: Dict[str, Any] = {'form': form, 'next_page': next_page}
    if not form.validate():
        logger.debug('Form data is not valid')
        return data, status.BAD_REQUEST, {}

    try:
        account = _do_authn(records, form.username.data, form.password.data)
    except AuthenticationFailed as e:
        logger.debug('Authentication failed for %s: %s',
                     form.username.data, e)
        data['error'] = 'Invalid username or password.'
        return data, status.BAD_REQUEST, {}
    except Unavailable as e:
        raise InternalServerError('Cannot log in') from e

    if not account.verified:
        data['error'] = 'Your e-mail address has not yet been verified.' \
                        ' Please follow the link we sent you.'
        return data, status.BAD_REQUEST, {}

    session.set_authorization(account)
    try:
        _do_touch(records, account, ip)
    except Unavailable:
        logger.exception('Could not record login for %s', account.guid)
    return data, status.SEE_OTHER, {'Location': next_page}


def logout(session: MemberSession, next_page: str) -> ResponseData:
    """
    Log the member out.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 303 (See Other).
    dict
        Headers to add to the response.

    """
    logger.debug('Request to log out')
    if not good_next_page(next_page):
        next_page = '/'
    session.clear()
    return {}, status.SEE_OTHER, {'Location': next_page}


class LoginForm(Form):
    """Log in form."""

    username = StringField('Username or e-mail', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


# These are broken out to add retry logic.
@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_authn(records: Records, username: str,
              password: str) -> domain.Account:
    return authenticate(records, username, password)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_touch(records: Records, account: domain.Account,
              ip: Optional[str]) -> domain.Account:
    return records.save_account(account._replace(lastseen=util.now(),
                                                 lastip=ip))
