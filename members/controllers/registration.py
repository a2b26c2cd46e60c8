"""
Controllers for member registration.

A member can register locally, with a username and password, or complete a
registration that was started at an identity provider. In the latter case the
provider's profile data is held in the client-side session as a
:class:`.TransitionalRegistration` until the member submits the registration
form, at which point :class:`RegistrationMerger` folds the two together into
exactly one :class:`.Account`.
"""

import logging
import unicodedata
import uuid
from http import HTTPStatus as status
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from werkzeug.security import generate_password_hash
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, ValidationError

from .. import domain
from ..auth.session import MemberSession
from ..exceptions import DuplicateAccount, RegistrationFailed, Unavailable
from ..services import util
from ..services.records import Records

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]
Notifier = Callable[[domain.Account, domain.VerificationCode], None]

USERNAME_MAX_LENGTH = 32
PASSWORD_MIN_LENGTH = 8


def slugify(value: str) -> str:
    """
    Make a URL-friendly slug from ``value``.

    Accents are stripped, runs of anything other than ASCII letters and digits
    become a single hyphen, and the result is lowercase.
    """
    normalized = unicodedata.normalize('NFKD', value or '') \
        .encode('ascii', 'ignore') \
        .decode('ascii') \
        .lower()
    normalized = ''.join(ch if ch.isalnum() else '-' for ch in normalized)
    return '-'.join(part for part in normalized.split('-') if part)


def derive_username(displayname: str,
                    max_length: int = USERNAME_MAX_LENGTH) -> str:
    """Derive a username from a display name."""
    return slugify(displayname)[:max_length].strip('-')


class RegistrationMerger(object):
    """
    Merges submitted registration data with pending provider data.

    Form values are authoritative. Provider data only fills in what the form
    left empty.
    """

    def __init__(self, records: Records, session: MemberSession,
                 username_max_length: int = USERNAME_MAX_LENGTH,
                 notify: Optional[Notifier] = None) -> None:
        """
        Parameters
        ----------
        records : :class:`.Records`
        session : :class:`.MemberSession`
            The session of the registering request. It is authorized as the
            new account if the merge succeeds.
        username_max_length : int
        notify : callable
            Called with the new account and its verification code, when the
            account needs to verify its e-mail address.
        """
        self.records = records
        self.session = session
        self.username_max_length = username_max_length
        self.notify = notify

    def prepopulate(self, transitional: Optional[
                        domain.TransitionalRegistration] = None) -> dict:
        """Build registration form defaults from provider data."""
        if transitional is None:
            return {}
        return {
            'username': derive_username(transitional.name,
                                        self.username_max_length),
            'displayname': transitional.name,
            'email': transitional.email
        }

    def _resolve(self, form_input: Mapping[str, Any],
                 transitional: Optional[domain.TransitionalRegistration]) \
            -> Dict[str, str]:
        def value(key: str) -> str:
            return (form_input.get(key) or '').strip()

        data = {key: value(key) for key in
                ('username', 'displayname', 'email')}
        data['password'] = form_input.get('password') or ''
        data['password_repeat'] = form_input.get('password_repeat') or ''
        if transitional is not None:
            data['displayname'] = data['displayname'] or transitional.name
            data['email'] = data['email'] or transitional.email
        if not data['username']:
            data['username'] = derive_username(data['displayname'],
                                               self.username_max_length)
        return data

    def _validate(self, data: Dict[str, str], password_required: bool) -> None:
        if not data['displayname']:
            raise RegistrationFailed('A display name is required')
        if not data['email']:
            raise RegistrationFailed('An e-mail address is required')
        if not data['username']:
            raise RegistrationFailed('Could not derive a username')
        if len(data['username']) > self.username_max_length:
            raise RegistrationFailed('Username is too long')
        if password_required and not data['password']:
            raise RegistrationFailed('A password is required')
        if data['password'] != data['password_repeat'] \
                and (data['password'] or data['password_repeat']):
            raise RegistrationFailed('Passwords must match')

    def merge(self, form_input: Mapping[str, Any],
              transitional: Optional[domain.TransitionalRegistration] = None
              ) -> domain.Account:
        """
        Create an account from the submitted form and any provider data.

        Parameters
        ----------
        form_input : mapping
            ``username``, ``displayname``, ``email``, ``password`` and
            ``password_repeat``. A missing username is derived from the
            display name.
        transitional : :class:`.TransitionalRegistration`
            Provider data for a registration started at an identity provider.
            Password fields are not required when this is present.

        Returns
        -------
        :class:`.Account`
            The new account. The session is authorized as this account, and
            the transitional data is discarded.

        Raises
        ------
        :class:`.RegistrationFailed`
            The merged data is not valid.
        :class:`.DuplicateAccount`
            The username or e-mail address is taken. This is also what a
            losing concurrent merge sees.

        """
        data = self._resolve(form_input, transitional)
        self._validate(data, password_required=transitional is None)

        if _email_exists(self.records, data['email']):
            raise DuplicateAccount('E-mail address is already registered')
        if _username_exists(self.records, data['username']):
            raise DuplicateAccount('Username is already taken')

        # A provider vouches for the address it gave us, if it was kept.
        verified = bool(transitional is not None and transitional.email
                        and transitional.email.lower()
                        == data['email'].lower())
        password = generate_password_hash(data['password']) \
            if data['password'] else None
        account = self.records.create_account(domain.Account(
            guid=str(uuid.uuid4()),
            username=data['username'],
            displayname=data['displayname'],
            email=data['email'],
            verified=verified,
            password=password,
            created=util.now()
        ))
        logger.info('Registered account %s', account.guid)

        # The account exists from here on, so the member is signed in even
        # if the remaining bookkeeping cannot be completed.
        self.session.clear_transitional()
        self.session.set_authorization(account)
        try:
            self._complete(account, transitional)
        except Unavailable:
            logger.exception('Could not complete registration of %s',
                             account.guid)
        return account

    def _complete(self, account: domain.Account,
                  transitional: Optional[domain.TransitionalRegistration]) \
            -> None:
        if transitional is not None:
            _add_account_meta(
                self.records, account.guid, domain.PROVIDER_KEY,
                f'{transitional.provider}:{transitional.resource_owner_id}'
            )
            if transitional.avatar:
                _add_account_meta(self.records, account.guid,
                                  domain.AVATAR_KEY, transitional.avatar)

        if not account.verified:
            code = _issue_verification_code(self.records, account.guid)
            if self.notify is not None:
                self.notify(account, code)


# These are broken out to add retry logic. Account creation is never retried.
@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _email_exists(records: Records, email: str) -> bool:
    return records.email_exists(email)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _username_exists(records: Records, username: str) -> bool:
    return records.username_exists(username)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _add_account_meta(records: Records, guid: str, key: str,
                      value: str) -> None:
    records.add_account_meta(guid, key, value)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _issue_verification_code(records: Records, guid: str) \
        -> domain.VerificationCode:
    return records.issue_verification_code(guid)


def register(method: str, params: MultiDict, session: MemberSession,
             records: Records, next_page: str,
             username_max_length: int = USERNAME_MAX_LENGTH,
             notify: Optional[Notifier] = None) -> ResponseData:
    """
    Handle requests for the registration view.

    Parameters
    ----------
    method : str
        ``GET`` or ``POST``.
    params : MultiDict
        Submitted form data.
    session : :class:`.MemberSession`
    records : :class:`.Records`
    next_page : str
        Where to send the member once registered.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. 303 (See Other) once the account is created.
    dict
        Headers to add to the response.

    """
    transitional = session.get_transitional()
    merger = RegistrationMerger(records, session, username_max_length,
                                notify=notify)
    require_password = transitional is None
    data: Dict[str, Any]
    if method == 'GET':
        form = RegisterForm(MultiDict(merger.prepopulate(transitional)),
                            require_password=require_password)
        data = {'form': form, 'transitional': transitional}
        return data, status.OK, {}

    logger.debug('Registration form submitted')
    form = RegisterForm(params, require_password=require_password)
    data = {'form': form, 'transitional': transitional}
    if not form.validate():
        logger.debug('Registration form not valid')
        return data, status.BAD_REQUEST, {}

    try:
        account = merger.merge(form.to_input(), transitional)
    except DuplicateAccount as e:
        logger.debug('Registration collided with an existing account: %s', e)
        data['error'] = 'An account with that username or e-mail address' \
                        ' already exists.'
        return data, status.BAD_REQUEST, {}
    except RegistrationFailed as e:
        data['error'] = str(e)
        return data, status.BAD_REQUEST, {}
    except Unavailable as e:
        raise InternalServerError('Registration failed') from e

    data['account'] = account
    return data, status.SEE_OTHER, {'Location': next_page}


class RegisterForm(Form):
    """Member registration form."""

    username = StringField(
        'Username',
        validators=[Length(max=USERNAME_MAX_LENGTH)],
        description='Leave blank to derive one from your display name.'
    )
    displayname = StringField('Display name',
                              validators=[DataRequired(), Length(max=128)])
    email = StringField('E-mail address',
                        validators=[DataRequired(), Email(), Length(max=128)])
    password = PasswordField('Password', validators=[Length(max=255)])
    password_repeat = PasswordField('Re-enter password')

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Grab `require_password` param, if provided."""
        self.require_password = kwargs.pop('require_password', True)
        super(RegisterForm, self).__init__(*args, **kwargs)

    def validate_password(self, field: PasswordField) -> None:
        """Local registrations need a password; provider ones do not."""
        if not field.data:
            if self.require_password:
                raise ValidationError('Please choose a password')
            return
        if len(field.data) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f'Passwords must be at least'
                                  f' {PASSWORD_MIN_LENGTH} characters')

    def validate_password_repeat(self, field: PasswordField) -> None:
        """Verify that the password is the same in both fields."""
        if (self.password.data or '') != (field.data or ''):
            raise ValidationError('Passwords must match')

    def to_input(self) -> Dict[str, str]:
        """Get the submitted values for :meth:`RegistrationMerger.merge`."""
        return {
            'username': self.username.data or '',
            'displayname': self.displayname.data or '',
            'email': self.email.data or '',
            'password': self.password.data or '',
            'password_repeat': self.password_repeat.data or ''
        }
