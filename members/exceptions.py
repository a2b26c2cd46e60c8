"""Exceptions."""


class InvalidAuthorizationRequest(RuntimeError):
    """A verification or authorization request cannot be honored."""


class InvalidToken(ValueError):
    """The authorization token is malformed, forged or expired."""


class ConfigurationError(RuntimeError):
    """The application is missing required configuration."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate a member with the provided credentials."""


class NoSuchAccount(RuntimeError):
    """Account does not exist."""


class NoSuchCode(RuntimeError):
    """Verification code does not exist, or has already been consumed."""


class DuplicateAccount(RuntimeError):
    """An account with the same e-mail address or username already exists."""


class RegistrationFailed(RuntimeError):
    """Could not create an account from the submitted registration data."""


class MetaDeletionFailed(RuntimeError):
    """Failed to delete an account meta record."""


class Unavailable(RuntimeError):
    """The account database is not available."""
