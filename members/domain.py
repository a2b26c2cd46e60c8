"""Defines member concepts for use in the members service."""

from typing import Any, Optional, NamedTuple, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pytz import UTC

VERIFICATION_KEY = 'account-verification-key'
"""Account meta key under which e-mail verification codes are issued."""

PROVIDER_KEY = 'oauth-provider'
"""Account meta key recording the identity provider(s) used to register."""

AVATAR_KEY = 'avatar'
"""Account meta key for the member's avatar URL."""


class Account(NamedTuple):
    """Represents a member account."""

    guid: str
    """Globally unique identifier. Immutable once assigned."""

    username: str
    """Slug-like username."""

    displayname: str
    """Name shown to other members."""

    email: str
    """The member's primary e-mail address."""

    verified: bool = False
    """Whether or not the e-mail address has been verified."""

    password: Optional[str] = None
    """Opaque credential material; ``None`` for provider-only accounts."""

    enabled: bool = True
    """Disabled accounts cannot be authorized."""

    created: Optional[datetime] = None
    """When the account was created."""

    lastseen: Optional[datetime] = None
    """Last successful authorization."""

    lastip: Optional[str] = None
    """Client address at the last successful authorization."""

    def verify(self) -> 'Account':
        """
        Get a copy of this account with the e-mail address verified.

        Verification is one-way; there is no inverse.
        """
        return self._replace(verified=True)


class AccountMeta(NamedTuple):
    """A single key/value record attached to an :class:`.Account`."""

    guid: str
    """The owning account."""

    meta: str
    """Key."""

    value: str

    created: Optional[datetime] = None

    meta_id: Optional[int] = None
    """Storage identifier, if the record has been persisted."""


class VerificationCode(NamedTuple):
    """A single-use code proving control of an account's e-mail address."""

    code: str
    """40 hexadecimal characters."""

    guid: str
    """The account that will be verified when the code is consumed."""

    issued_at: datetime

    def as_meta(self) -> AccountMeta:
        """Represent this code as a verification-key :class:`.AccountMeta`."""
        return AccountMeta(guid=self.guid, meta=VERIFICATION_KEY,
                           value=self.code, created=self.issued_at)


@dataclass(frozen=True)
class Authorization:
    """
    Who is making the current request, as carried by the member cookie.

    Nothing here is stored server-side. ``cookie`` is the opaque payload that
    the record was decoded from (or encoded to), and does not take part in
    comparisons.
    """

    guid: Optional[str]
    """The authorized account, or ``None`` if unauthenticated."""

    issued_at: datetime

    expires_at: datetime

    cookie: Optional[str] = field(default=None, compare=False)

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.expires_at`."""
        return datetime.now(tz=UTC) >= self.expires_at

    @property
    def expires(self) -> int:
        """
        Number of seconds until the authorization expires.

        If the authorization is already expired, returns 0.
        """
        duration = (self.expires_at - datetime.now(tz=UTC)).total_seconds()
        return max(int(duration), 0)


class TransitionalRegistration(NamedTuple):
    """Profile data from an identity provider awaiting a local registration."""

    provider: str
    """Name of the identity provider, e.g. ``github``."""

    resource_owner_id: str
    """The member's identifier at the provider."""

    name: str = ''

    email: str = ''

    avatar: Optional[str] = None

    def to_dict(self) -> dict:
        """Generate a JSON-friendly representation for the client session."""
        return dict(self._asdict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TransitionalRegistration':
        """Inverse of :meth:`to_dict`; unknown keys are ignored."""
        return cls(**{key: value for key, value in data.items()
                      if key in cls._fields})
