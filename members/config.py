"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
BASE_SERVER = os.environ.get('BASE_SERVER', 'localhost')
"""Sets base server for use when a domain name is needed."""

DEFAULT_REDIRECT_URL = os.environ.get('DEFAULT_REDIRECT_URL', '/')
"""Where members land after registering or logging in."""

SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key, which signs the client-side session that
carries transitional registration data."""


#################### Member authorization cookie ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign the member authorization cookie."""

MEMBERS_COOKIE_NAME = os.environ.get('MEMBERS_COOKIE_NAME', 'members')
MEMBERS_COOKIE_LIFETIME = int(os.environ.get('MEMBERS_COOKIE_LIFETIME',
                                             '86400'))
"""Seconds for which a freshly minted authorization is valid."""

MEMBERS_COOKIE_DOMAIN = os.environ.get('MEMBERS_COOKIE_DOMAIN', None)
MEMBERS_COOKIE_SECURE = bool(int(os.environ.get('MEMBERS_COOKIE_SECURE',
                                                '1')))


#################### Registration & verification ####################
USERNAME_MAX_LENGTH = int(os.environ.get('USERNAME_MAX_LENGTH', '32'))
"""Derived usernames are truncated to this length."""

VERIFICATION_CODE_TTL = int(os.environ.get('VERIFICATION_CODE_TTL', '172800'))
"""Seconds for which an issued verification code may be consumed.

Set to 0 to let codes live until they are consumed."""

SMTP_HOST = os.environ.get('SMTP_HOST', '')
"""If not set, verification links are only written to the log."""

SMTP_PORT = int(os.environ.get('SMTP_PORT', '25'))
MAIL_FROM = os.environ.get('MAIL_FROM', f'members@{BASE_SERVER}')


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///members.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))


#################### Logging ####################
LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

LOG_JSON = bool(int(os.environ.get('LOG_JSON', 0)))
"""Emit log records as JSON lines."""
