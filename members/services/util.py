"""Helpers and Flask application integration for the account database."""

import logging
from typing import Generator, Optional
from datetime import datetime
from pytz import UTC
from contextlib import contextmanager

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.session import Session

from ..exceptions import Unavailable
from .models import db

logger = logging.getLogger(__name__)


def now() -> datetime:
    """Get the current time, in UTC, to the second."""
    return datetime.now(tz=UTC).replace(microsecond=0)


def to_db(t: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware :class:`.datetime` to the naive UTC we store."""
    if t is None:
        return None
    if t.tzinfo is not None:
        t = t.astimezone(UTC).replace(tzinfo=None)
    return t


def from_db(t: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive :class:`.datetime` loaded from the database."""
    if t is None:
        return None
    return UTC.localize(t) if t.tzinfo is None else t


@contextmanager
def transaction(session: Optional[Session] = None) -> Generator:
    """Context manager for database transaction."""
    if session is None:
        session = current_session()
    try:
        yield session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if session.new or session.dirty or session.deleted:
            session.commit()
    except OperationalError as e:
        logger.warning('Database unavailable, rolling back: %s', str(e))
        session.rollback()
        raise Unavailable('Account database is not available') from e
    except Exception as e:
        logger.warning('Commit failed, rolling back: %s', str(e))
        session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available() -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
