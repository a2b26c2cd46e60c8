"""
Controllers for e-mail verification.

When an account is registered without a provider vouching for its e-mail
address, a single-use verification code is issued and sent to that address.
Following the link consumes the code and marks the account as verified.
An account moves from unverified to verified exactly once; a code moves from
issued to consumed exactly once.
"""

import logging
from http import HTTPStatus as status
from typing import Optional, Tuple

from retry import retry

from ..domain import VERIFICATION_KEY
from ..exceptions import InvalidAuthorizationRequest, MetaDeletionFailed, \
    NoSuchAccount, Unavailable
from ..services.codes import CODE_LENGTH
from ..services.records import Records

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

SUCCESS = 'Success'


def verify(code: Optional[str], records: Records) -> str:
    """
    Consume a verification code, and mark its account as verified.

    Parameters
    ----------
    code : str
        The code from the verification link.
    records : :class:`.Records`

    Returns
    -------
    str
        ``'Success'``

    Raises
    ------
    :class:`.InvalidAuthorizationRequest`
        ``'Invalid code'`` if the code is not 40 characters long (checked
        before touching storage), ``'No meta code'`` if no outstanding code
        matches, ``'No account'`` if the code belongs to an account that no
        longer exists.

    """
    if code is None or len(code) != CODE_LENGTH:
        raise InvalidAuthorizationRequest('Invalid code')

    metas = records.get_account_meta_values(VERIFICATION_KEY, code)
    if not metas:
        raise InvalidAuthorizationRequest('No meta code')
    if len(metas) > 1:
        logger.warning('%i records share a verification code; using the'
                       ' earliest', len(metas))
    meta = metas[0]

    try:
        account = records.get_account_by_guid(meta.guid)
    except NoSuchAccount as e:
        raise InvalidAuthorizationRequest('No account') from e

    # Committed before the code is removed. If we fail in between, the code
    # is left dangling on an account that is already verified.
    records.save_account(account.verify())
    logger.info('Verified account %s', account.guid)

    try:
        records.delete_account_meta(meta)
    except (MetaDeletionFailed, Unavailable):
        logger.exception('Could not remove consumed verification code for'
                         ' account %s', account.guid)
    return SUCCESS


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_verify(code: Optional[str], records: Records) -> str:
    return verify(code, records)


def verify_profile(code: Optional[str], records: Records) -> ResponseData:
    """
    Handle a request to verify an account.

    Parameters
    ----------
    code : str or None
        Value of the ``code`` query parameter.
    records : :class:`.Records`

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. 200 if verification succeeded, otherwise 400.
    dict
        Headers to add to the response.

    """
    try:
        result = _do_verify(code, records)
    except InvalidAuthorizationRequest as e:
        logger.debug('Verification rejected: %s', e)
        return {'error': str(e)}, status.BAD_REQUEST, {}
    return {'result': result}, status.OK, {}
