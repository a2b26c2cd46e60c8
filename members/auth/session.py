"""
Request-scoped member authorization state.

A :class:`MemberSession` is built for each request from the incoming
authorization cookie, and handed to whatever needs to know who is making the
request. Nothing is kept between requests other than the cookie itself and,
during a provider-backed registration, the transitional profile data in the
client-side session.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, MutableMapping, Optional
from pytz import UTC
from retry.api import retry_call

from .. import domain
from ..exceptions import InvalidToken, NoSuchAccount, Unavailable
from . import tokens

logger = logging.getLogger(__name__)

TRANSITIONAL_KEY = 'members-transitional'
"""Key of the transitional registration data in the client-side session."""

DEFAULT_LIFETIME = 86400
"""Seconds for which a freshly minted authorization is valid."""

AccountLoader = Callable[[str], domain.Account]


class MemberSession(object):
    """Holds the authorization state of a single request."""

    def __init__(self, secret: str, lifetime: int = DEFAULT_LIFETIME,
                 authorization: Optional[domain.Authorization] = None,
                 transitional_store: Optional[MutableMapping[str, Any]] = None
                 ) -> None:
        """
        Parameters
        ----------
        secret : str
            Key material used to sign authorization cookies.
        lifetime : int
            Lifetime of newly minted authorizations, in seconds.
        authorization : :class:`.domain.Authorization`
            Already-decoded authorization for this request, if any.
        transitional_store : mapping
            Where transitional registration data lives; normally the Flask
            session.
        """
        self._secret = secret
        self._lifetime = lifetime
        self._authorization = authorization
        self._transitional = transitional_store \
            if transitional_store is not None else {}

    @classmethod
    def load(cls, cookie: Optional[str], secret: str,
             get_account: Optional[AccountLoader] = None,
             lifetime: int = DEFAULT_LIFETIME,
             transitional_store: Optional[MutableMapping[str, Any]] = None
             ) -> 'MemberSession':
        """
        Build the session for a request from its authorization cookie.

        A missing cookie is an ordinary anonymous request. A cookie that does
        not decode, or that names an account that no longer exists or is
        disabled, also yields an anonymous session; the stale cookie will
        then be cleared on the response.

        Parameters
        ----------
        cookie : str or None
        secret : str
        get_account : callable
            Resolves a GUID to an :class:`.domain.Account`, raising
            :class:`.NoSuchAccount` if there is none. If not provided, the
            GUID in the cookie is trusted as-is. The same goes for a lookup
            that keeps failing with :class:`.Unavailable`, so that a
            database outage does not sign everyone out.
        """
        session = cls(secret, lifetime, transitional_store=transitional_store)
        if not cookie:
            return session
        try:
            authorization = tokens.decode(cookie, secret)
        except InvalidToken as e:
            logger.debug('Ignoring authorization cookie: %s', e)
            return session

        if get_account is not None:
            try:
                account: Optional[domain.Account] = retry_call(
                    get_account, fargs=[authorization.guid],
                    exceptions=Unavailable, tries=3, delay=0.5, backoff=2
                )
            except NoSuchAccount:
                logger.info('Authorization for unknown account %s',
                            authorization.guid)
                return session
            except Unavailable as e:
                logger.warning('Could not look up account %s, trusting its'
                               ' cookie: %s', authorization.guid, e)
                account = None
            if account is not None and not account.enabled:
                logger.info('Authorization for disabled account %s',
                            authorization.guid)
                return session
        session._authorization = authorization
        return session

    def has_authorization(self) -> bool:
        """Whether the request is associated with a member account."""
        return self._authorization is not None \
            and self._authorization.guid is not None \
            and not self._authorization.expired

    def get_authorization(self) -> Optional[domain.Authorization]:
        """Get the current authorization, or ``None`` if anonymous."""
        if not self.has_authorization():
            return None
        return self._authorization

    def set_authorization(self, account: domain.Account) \
            -> domain.Authorization:
        """
        Authorize the request as ``account``.

        A fresh authorization is minted, and its cookie payload will be
        emitted on the response.
        """
        issued_at = datetime.now(tz=UTC).replace(microsecond=0)
        authorization = domain.Authorization(
            guid=account.guid,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self._lifetime)
        )
        authorization = replace(
            authorization,
            cookie=tokens.encode(authorization, self._secret)
        )
        self._authorization = authorization
        logger.debug('Authorized account %s', account.guid)
        return authorization

    def clear(self) -> None:
        """Make the request anonymous. The cookie will be cleared."""
        self._authorization = None

    @property
    def cookie(self) -> Optional[str]:
        """The cookie payload to emit, or ``None`` if it must be cleared."""
        authorization = self.get_authorization()
        if authorization is None:
            return None
        return authorization.cookie

    # Transitional registration.

    def is_transitional(self) -> bool:
        """
        Whether a provider-backed registration is waiting to be completed.

        True when transitional registration data is present and no account is
        authorized.
        """
        return not self.has_authorization() \
            and bool(self._transitional.get(TRANSITIONAL_KEY))

    def get_transitional(self) -> Optional[domain.TransitionalRegistration]:
        """Get the pending provider profile data, if any."""
        data = self._transitional.get(TRANSITIONAL_KEY)
        if not data:
            return None
        return domain.TransitionalRegistration.from_dict(data)

    def set_transitional(self,
                         registration: domain.TransitionalRegistration) -> None:
        """Hold provider profile data until the member completes registration."""
        self._transitional[TRANSITIONAL_KEY] = registration.to_dict()

    def clear_transitional(self) -> None:
        """Discard any pending provider profile data."""
        self._transitional.pop(TRANSITIONAL_KEY, None)
