"""Functions for working with member authorization tokens."""

from datetime import datetime
from pytz import UTC

import jwt

from ..exceptions import InvalidToken
from .. import domain

ALGORITHM = 'HS256'
REQUIRED_CLAIMS = ['sub', 'iat', 'exp']


def _epoch(t: datetime) -> int:
    return int(t.timestamp())


def encode(authorization: domain.Authorization, secret: str) -> str:
    """
    Encode an authorization as a signed JWT.

    The same authorization and secret always produce the same token. Times
    are carried with second precision.
    """
    if authorization.guid is None:
        raise ValueError('Cannot encode an unauthenticated authorization')
    claims = {
        'sub': authorization.guid,
        'iat': _epoch(authorization.issued_at),
        'exp': _epoch(authorization.expires_at)
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode(token: str, secret: str) -> domain.Authorization:
    """
    Decode a token to recover the authorization it was minted for.

    Raises
    ------
    :class:`InvalidToken`
        Raised if the token is malformed, was not signed with ``secret``, is
        missing claims, or has expired.
    """
    try:
        data: dict = jwt.decode(token, secret, algorithms=[ALGORITHM],
                                options={'require': REQUIRED_CLAIMS})
    except jwt.exceptions.ExpiredSignatureError as e:
        raise InvalidToken('Token has expired') from e
    except jwt.exceptions.InvalidTokenError as e:
        raise InvalidToken('Not a valid token') from e

    return domain.Authorization(
        guid=data['sub'],
        issued_at=datetime.fromtimestamp(data['iat'], tz=UTC),
        expires_at=datetime.fromtimestamp(data['exp'], tz=UTC),
        cookie=token
    )
