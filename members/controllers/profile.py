"""Controllers for viewing and editing member profiles."""

import logging
from http import HTTPStatus as status
from typing import Any, Dict, Optional, Tuple

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError, NotFound, Unauthorized
from wtforms import Form, StringField
from wtforms.validators import DataRequired, Email, Length

from .. import domain
from ..auth.session import MemberSession
from ..exceptions import DuplicateAccount, NoSuchAccount, Unavailable
from ..services.records import Records

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def _avatar(records: Records, guid: str) -> Optional[str]:
    metas = records.get_account_meta(guid, domain.AVATAR_KEY)
    return metas[-1].value if metas else None


def view_profile(guid: str, records: Records) -> ResponseData:
    """Handle requests to view a member's profile."""
    try:
        account = records.get_account_by_guid(guid)
    except NoSuchAccount as e:
        raise NotFound('No such member') from e
    if not account.enabled:
        raise NotFound('No such member')
    data = {
        'account': account,
        'avatar': _avatar(records, guid),
    }
    return data, status.OK, {}


def edit_profile(method: str, params: Optional[MultiDict],
                 session: MemberSession, records: Records) -> ResponseData:
    """
    Handle requests to update the authorized member's profile.

    Display name and e-mail address can be changed. Changing the e-mail
    address leaves the verified flag as it is.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. 303 (See Other) once the changes are saved.
    dict
        Headers to add to the response.

    """
    authorization = session.get_authorization()
    if authorization is None:
        raise Unauthorized('Login required')
    try:
        account = records.get_account_by_guid(authorization.guid)
    except NoSuchAccount as e:
        raise Unauthorized('Login required') from e

    data: Dict[str, Any] = {'account': account,
                            'avatar': _avatar(records, account.guid)}
    if method == 'GET':
        data['form'] = ProfileForm.from_domain(account)
        return data, status.OK, {}

    form = ProfileForm(params)
    data['form'] = form
    if not form.validate():
        return data, status.BAD_REQUEST, {}

    try:
        account = records.save_account(account._replace(
            displayname=form.displayname.data,
            email=form.email.data
        ))
    except DuplicateAccount:
        data['error'] = 'That e-mail address belongs to another account.'
        return data, status.BAD_REQUEST, {}
    except Unavailable as e:
        raise InternalServerError('Could not save profile') from e
    logger.debug('Updated profile for %s', account.guid)
    data['account'] = account
    return data, status.SEE_OTHER, {}


class ProfileForm(Form):
    """Member profile form."""

    displayname = StringField('Display name',
                              validators=[DataRequired(), Length(max=128)])
    email = StringField('E-mail address',
                        validators=[DataRequired(), Email(), Length(max=128)])

    @classmethod
    def from_domain(cls, account: domain.Account) -> 'ProfileForm':
        """Instantiate this form with data from a domain object."""
        return cls(MultiDict({
            'displayname': account.displayname,
            'email': account.email
        }))
