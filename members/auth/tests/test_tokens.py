"""Tests for :mod:`members.auth.tokens`."""

from datetime import datetime, timedelta
from unittest import TestCase

import jwt
from pytz import UTC

from ... import domain
from ...exceptions import InvalidToken
from .. import tokens


def _authorization(guid='G1', lifetime=3600, age=0):
    issued_at = datetime.now(tz=UTC).replace(microsecond=0) \
        - timedelta(seconds=age)
    return domain.Authorization(
        guid=guid,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(seconds=lifetime)
    )


class TestEncodeDecode(TestCase):
    """Authorizations survive a trip through a token."""

    def test_round_trip(self):
        """Decoding an encoded authorization yields the same record."""
        authorization = _authorization()
        token = tokens.encode(authorization, 'foosecret')
        decoded = tokens.decode(token, 'foosecret')

        self.assertEqual(decoded, authorization)
        self.assertEqual(decoded.cookie, token)
        self.assertEqual(decoded.issued_at.tzinfo, UTC)

    def test_deterministic(self):
        """The same record and secret give the same token."""
        authorization = _authorization()
        self.assertEqual(tokens.encode(authorization, 'foosecret'),
                         tokens.encode(authorization, 'foosecret'))

    def test_unauthenticated(self):
        """There is no token for an anonymous record."""
        with self.assertRaises(ValueError):
            tokens.encode(_authorization(guid=None), 'foosecret')

    def test_wrong_secret(self):
        """A token signed with another secret is rejected."""
        token = tokens.encode(_authorization(), 'foosecret')
        with self.assertRaises(InvalidToken):
            tokens.decode(token, 'barsecret')

    def test_tampered(self):
        """A modified token is rejected."""
        token = tokens.encode(_authorization(), 'foosecret')
        header, payload, signature = token.split('.')
        forged = jwt.encode({'sub': 'G2', 'iat': 0, 'exp': 2 ** 31},
                            'barsecret', algorithm='HS256').split('.')[1]
        with self.assertRaises(InvalidToken):
            tokens.decode('.'.join([header, forged, signature]), 'foosecret')

    def test_expired(self):
        """An expired token is rejected."""
        token = tokens.encode(_authorization(lifetime=60, age=120),
                              'foosecret')
        with self.assertRaisesRegex(InvalidToken, 'expired'):
            tokens.decode(token, 'foosecret')

    def test_malformed(self):
        """Garbage is not a token."""
        for token in ['', 'foo', 'foo.bar.baz']:
            with self.assertRaises(InvalidToken):
                tokens.decode(token, 'foosecret')

    def test_missing_claims(self):
        """A token signed with the right secret must still carry all claims."""
        token = jwt.encode({'sub': 'G1'}, 'foosecret', algorithm='HS256')
        with self.assertRaises(InvalidToken):
            tokens.decode(token, 'foosecret')
