"""
Single-use e-mail verification codes.

A code is issued when an account needs to prove control of its e-mail
address, and is consumed exactly once by the verification flow. Issuing a new
code for an account supersedes the previous one. Codes older than the
configured TTL are no longer honored, and can be removed with
:meth:`CodeStore.purge_expired`.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from .. import domain
from ..exceptions import NoSuchCode
from . import util
from .models import DBVerificationCode

logger = logging.getLogger(__name__)

CODE_LENGTH = 40
"""Number of characters in a verification code."""


def generate_code() -> str:
    """Generate a new random verification code."""
    return secrets.token_hex(CODE_LENGTH // 2)


def _to_domain(db_code: DBVerificationCode) -> domain.VerificationCode:
    return domain.VerificationCode(
        code=db_code.code,
        guid=db_code.guid,
        issued_at=util.from_db(db_code.issued_at)
    )


class CodeStore(object):
    """Persists verification codes for a single database session."""

    def __init__(self, session: Session, ttl: int = 0) -> None:
        """
        Parameters
        ----------
        session : :class:`Session`
        ttl : int
            Seconds for which an issued code may be consumed. If 0, codes do
            not expire.
        """
        self._session = session
        self._ttl = ttl

    def _cutoff(self, now: Optional[datetime] = None) -> Optional[datetime]:
        if not self._ttl:
            return None
        return (now or util.now()) - timedelta(seconds=self._ttl)

    def issue(self, guid: str, tries: int = 3) -> domain.VerificationCode:
        """
        Issue a new code for an account, replacing any outstanding code.

        A collision with an outstanding code belonging to another account is
        retried with a fresh code, up to ``tries`` times.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                with util.transaction(self._session) as session:
                    session.query(DBVerificationCode) \
                        .filter(DBVerificationCode.guid == guid) \
                        .delete(synchronize_session=False)
                    db_code = DBVerificationCode(
                        code=generate_code(),
                        guid=guid,
                        issued_at=util.to_db(util.now())
                    )
                    session.add(db_code)
            except IntegrityError:
                if attempt >= tries:
                    raise
                logger.warning('Verification code collision (attempt %i)',
                               attempt)
            else:
                logger.debug('Issued verification code for %s', guid)
                return _to_domain(db_code)

    def lookup(self, code: str) -> List[domain.VerificationCode]:
        """
        Get the unexpired codes matching ``code``.

        Ordered by issue time, then by insertion order, so that the first
        item is the earliest issued.
        """
        with util.transaction(self._session) as session:
            query = session.query(DBVerificationCode) \
                .filter(DBVerificationCode.code == code)
            cutoff = self._cutoff()
            if cutoff is not None:
                query = query.filter(
                    DBVerificationCode.issued_at > util.to_db(cutoff)
                )
            db_codes = query.order_by(DBVerificationCode.issued_at,
                                      DBVerificationCode.code_id).all()
        return [_to_domain(db_code) for db_code in db_codes]

    def for_account(self, guid: str) -> List[domain.VerificationCode]:
        """Get the outstanding code for an account, if any, as a list."""
        with util.transaction(self._session) as session:
            db_codes = session.query(DBVerificationCode) \
                .filter(DBVerificationCode.guid == guid) \
                .all()
        return [_to_domain(db_code) for db_code in db_codes]

    def consume(self, code: str, guid: Optional[str] = None) -> None:
        """
        Remove a code so that it cannot be used again.

        Raises
        ------
        :class:`NoSuchCode`
            Nothing matched; the code may already have been consumed.
        """
        with util.transaction(self._session) as session:
            query = session.query(DBVerificationCode) \
                .filter(DBVerificationCode.code == code)
            if guid is not None:
                query = query.filter(DBVerificationCode.guid == guid)
            deleted = query.delete(synchronize_session=False)
            session.commit()
        if not deleted:
            raise NoSuchCode('No such code')

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete codes that are past their TTL. Returns the number removed."""
        cutoff = self._cutoff(now)
        if cutoff is None:
            return 0
        with util.transaction(self._session) as session:
            purged: int = session.query(DBVerificationCode) \
                .filter(DBVerificationCode.issued_at <= util.to_db(cutoff)) \
                .delete(synchronize_session=False)
            session.commit()
        logger.info('Purged %i expired verification codes', purged)
        return purged
