"""Tests for :class:`members.auth.Auth`."""

import re
from datetime import datetime, timedelta
from unittest import TestCase

from flask import Flask, request
from pytz import UTC

from ... import domain
from ...exceptions import ConfigurationError
from .. import Auth, emit_cookie, tokens

ACCOUNT = domain.Account(guid='G1', username='ada',
                         displayname='Ada Lovelace', email='ada@lovelace.org',
                         verified=True)


def _set_cookies(response):
    return response.headers.getlist('Set-Cookie')


def _max_age(cookie):
    return int(re.search(r'Max-Age=(\d+)', cookie).group(1))


class TestAuthExtension(TestCase):
    """The member session is loaded, and the cookie kept in step with it."""

    def setUp(self):
        self.app = Flask('test_members_app')
        self.app.config['JWT_SECRET'] = 'foosecret'
        self.app.config['SECRET_KEY'] = 'barsecret'
        self.app.config['MEMBERS_COOKIE_NAME'] = 'foo_members'
        Auth(self.app)

        @self.app.route('/login')
        def login():
            request.members.set_authorization(ACCOUNT)
            return 'ok'

        @self.app.route('/logout')
        def logout():
            request.members.clear()
            return 'ok'

        @self.app.route('/whoami')
        def whoami():
            authorization = request.members.get_authorization()
            return authorization.guid if authorization else 'anonymous'

        self.client = self.app.test_client()

    def test_login_logout(self):
        """The cookie is set on login, and actively cleared on logout."""
        self.assertEqual(self.client.get('/whoami').data, b'anonymous')

        response = self.client.get('/login')
        cookies = _set_cookies(response)
        self.assertEqual(len(cookies), 1)
        self.assertTrue(cookies[0].startswith('foo_members='))
        self.assertIn('HttpOnly', cookies[0])
        self.assertAlmostEqual(_max_age(cookies[0]), 86400, delta=2)

        self.assertEqual(self.client.get('/whoami').data, b'G1')

        response = self.client.get('/logout')
        cookies = _set_cookies(response)
        self.assertEqual(len(cookies), 1)
        self.assertTrue(cookies[0].startswith('foo_members=;'))
        self.assertIn('Max-Age=0', cookies[0])

        self.assertEqual(self.client.get('/whoami').data, b'anonymous')

    def test_bad_cookie_is_cleared(self):
        """A cookie that does not decode is cleared on the response."""
        self.client.set_cookie('foo_members', 'notatoken')
        response = self.client.get('/whoami')
        self.assertEqual(response.data, b'anonymous')
        self.assertIn('Max-Age=0', _set_cookies(response)[0])

    def test_cookie_expires_with_authorization(self):
        """A re-emitted cookie does not outlive its authorization."""
        issued_at = datetime.now(tz=UTC).replace(microsecond=0) \
            - timedelta(hours=2)
        authorization = domain.Authorization(
            guid='G1', issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=86400)
        )
        self.client.set_cookie('foo_members',
                               tokens.encode(authorization, 'foosecret'))
        response = self.client.get('/whoami')
        self.assertEqual(response.data, b'G1')
        max_age = _max_age(_set_cookies(response)[0])
        self.assertLessEqual(max_age, 86400 - 7200)
        self.assertGreater(max_age, 86400 - 7200 - 10)

    def test_missing_secret(self):
        """The extension refuses to run without a signing secret."""
        self.app.config['JWT_SECRET'] = ''
        self.app.config['TESTING'] = True
        with self.assertRaises(ConfigurationError):
            self.client.get('/whoami')


class TestEmitCookie(TestCase):
    """Cookie discipline at the response boundary."""

    def setUp(self):
        self.app = Flask('test_members_app')

    def test_no_authorization(self):
        """No authorization means the cookie is cleared."""
        response = emit_cookie(self.app.response_class(), None, 'members')
        self.assertIn('Max-Age=0', _set_cookies(response)[0])

    def test_capped_by_max_age(self):
        """The cookie never lives longer than the configured lifetime."""
        now = datetime.now(tz=UTC)
        authorization = domain.Authorization(
            guid='G1', issued_at=now, expires_at=now + timedelta(days=7),
            cookie='foocookie'
        )
        response = emit_cookie(self.app.response_class(), authorization,
                               'members', max_age=600)
        self.assertEqual(_max_age(_set_cookies(response)[0]), 600)

    def test_secure(self):
        """Secure cookies are not sent across sites."""
        now = datetime.now(tz=UTC)
        authorization = domain.Authorization(
            guid='G1', issued_at=now, expires_at=now + timedelta(hours=1),
            cookie='foocookie'
        )
        response = emit_cookie(self.app.response_class(), authorization,
                               'members', max_age=3600, secure=True)
        cookie = _set_cookies(response)[0]
        self.assertTrue(cookie.startswith('members=foocookie'))
        self.assertIn('Secure', cookie)
        self.assertIn('SameSite=Lax', cookie)
        self.assertAlmostEqual(_max_age(cookie), 3600, delta=2)
