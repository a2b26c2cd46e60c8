"""
Account repository.

:class:`Records` owns account entities and the key/value meta records
attached to them. It is constructed per request over a database session, and
passed explicitly to the controllers that need it. Each method runs in its own
transaction, so a write is committed before the method returns.

Uniqueness of e-mail addresses and usernames is enforced by the database;
violations surface as :class:`.DuplicateAccount`.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.session import Session

from .. import domain
from ..exceptions import DuplicateAccount, MetaDeletionFailed, NoSuchAccount, \
    NoSuchCode
from . import util
from .codes import CodeStore
from .models import DBAccount, DBAccountMeta

logger = logging.getLogger(__name__)


def _to_domain(db_account: DBAccount) -> domain.Account:
    return domain.Account(
        guid=db_account.guid,
        username=db_account.username,
        displayname=db_account.displayname,
        email=db_account.email,
        verified=bool(db_account.verified),
        password=db_account.password,
        enabled=bool(db_account.enabled),
        created=util.from_db(db_account.created),
        lastseen=util.from_db(db_account.lastseen),
        lastip=db_account.lastip
    )


def _meta_to_domain(db_meta: DBAccountMeta) -> domain.AccountMeta:
    return domain.AccountMeta(
        guid=db_meta.guid,
        meta=db_meta.meta,
        value=db_meta.value,
        created=util.from_db(db_meta.created),
        meta_id=db_meta.meta_id
    )


def _update_field_if_changed(obj: object, field: str, update_with: object) \
        -> None:
    if getattr(obj, field) != update_with:
        setattr(obj, field, update_with)


class Records(object):
    """Repository for member accounts and account meta."""

    def __init__(self, session: Optional[Session] = None,
                 code_ttl: int = 0) -> None:
        """
        Parameters
        ----------
        session : :class:`Session`
            Defaults to the application's scoped session.
        code_ttl : int
            Lifetime of verification codes, in seconds. 0 means no expiry.
        """
        self._session = session if session is not None \
            else util.current_session()
        self.codes = CodeStore(self._session, ttl=code_ttl)

    # Accounts.

    def _load(self, session: Session, **criteria: str) -> DBAccount:
        db_account: Optional[DBAccount] = session.query(DBAccount) \
            .filter_by(**criteria) \
            .first()
        if db_account is None:
            raise NoSuchAccount('Account does not exist')
        return db_account

    def get_account_by_guid(self, guid: str) -> domain.Account:
        """
        Load an account by its GUID.

        Raises
        ------
        :class:`NoSuchAccount`
        """
        with util.transaction(self._session) as session:
            return _to_domain(self._load(session, guid=guid))

    def get_account_by_email(self, email: str) -> domain.Account:
        """Load an account by e-mail address."""
        with util.transaction(self._session) as session:
            return _to_domain(self._load(session, email=email))

    def get_account_by_username(self, username: str) -> domain.Account:
        """Load an account by username."""
        with util.transaction(self._session) as session:
            return _to_domain(self._load(session, username=username))

    def username_exists(self, username: str) -> bool:
        """Determine whether an account with ``username`` already exists."""
        with util.transaction(self._session) as session:
            data = session.query(DBAccount.guid) \
                .filter(DBAccount.username == username) \
                .first()
        return data is not None

    def email_exists(self, email: str) -> bool:
        """Determine whether an account with ``email`` already exists."""
        with util.transaction(self._session) as session:
            data = session.query(DBAccount.guid) \
                .filter(DBAccount.email == email) \
                .first()
        return data is not None

    def create_account(self, account: domain.Account) -> domain.Account:
        """
        Persist a new account.

        Raises
        ------
        :class:`DuplicateAccount`
            The GUID, username or e-mail address is already in use.
        """
        db_account = DBAccount(
            guid=account.guid,
            username=account.username,
            displayname=account.displayname,
            email=account.email,
            password=account.password,
            enabled=account.enabled,
            verified=account.verified,
            created=util.to_db(account.created or util.now()),
            lastseen=util.to_db(account.lastseen),
            lastip=account.lastip
        )
        try:
            with util.transaction(self._session) as session:
                session.add(db_account)
        except IntegrityError as e:
            raise DuplicateAccount('Account already exists') from e
        logger.debug('Created account %s', account.guid)
        return self.get_account_by_guid(account.guid)

    def save_account(self, account: domain.Account) -> domain.Account:
        """
        Update an existing account.

        The verified flag is never cleared once set.

        Raises
        ------
        :class:`NoSuchAccount`
        :class:`DuplicateAccount`
            The new username or e-mail address belongs to another account.
        """
        try:
            with util.transaction(self._session) as session:
                db_account = self._load(session, guid=account.guid)
                _update_field_if_changed(db_account, 'username',
                                         account.username)
                _update_field_if_changed(db_account, 'displayname',
                                         account.displayname)
                _update_field_if_changed(db_account, 'email', account.email)
                _update_field_if_changed(db_account, 'password',
                                         account.password)
                _update_field_if_changed(db_account, 'enabled',
                                         account.enabled)
                _update_field_if_changed(db_account, 'verified',
                                         bool(db_account.verified
                                              or account.verified))
                _update_field_if_changed(db_account, 'lastseen',
                                         util.to_db(account.lastseen))
                _update_field_if_changed(db_account, 'lastip', account.lastip)
                session.add(db_account)
                updated = _to_domain(db_account)
        except IntegrityError as e:
            raise DuplicateAccount('Username or e-mail in use') from e
        return updated

    # Account meta.

    def get_account_meta(self, guid: str, key: str) \
            -> List[domain.AccountMeta]:
        """Get all meta records for an account with key ``key``."""
        if key == domain.VERIFICATION_KEY:
            return [code.as_meta() for code in self.codes.for_account(guid)]
        with util.transaction(self._session) as session:
            db_metas = session.query(DBAccountMeta) \
                .filter(DBAccountMeta.guid == guid) \
                .filter(DBAccountMeta.meta == key) \
                .order_by(DBAccountMeta.meta_id) \
                .all()
            return [_meta_to_domain(db_meta) for db_meta in db_metas]

    def add_account_meta(self, guid: str, key: str, value: str) \
            -> domain.AccountMeta:
        """Attach a key/value record to an account."""
        if key == domain.VERIFICATION_KEY:
            raise ValueError('Use issue_verification_code()')
        db_meta = DBAccountMeta(guid=guid, meta=key, value=value,
                                created=util.to_db(util.now()))
        with util.transaction(self._session) as session:
            session.add(db_meta)
        return _meta_to_domain(db_meta)

    def get_account_meta_values(self, key: str, value: str) \
            -> List[domain.AccountMeta]:
        """
        Get the meta records, across all accounts, with ``key`` and ``value``.

        Verification-key records are ordered earliest issued first. An empty
        list means there were no matches.
        """
        if key == domain.VERIFICATION_KEY:
            return [code.as_meta() for code in self.codes.lookup(value)]
        with util.transaction(self._session) as session:
            db_metas = session.query(DBAccountMeta) \
                .filter(DBAccountMeta.meta == key) \
                .filter(DBAccountMeta.value == value) \
                .order_by(DBAccountMeta.created, DBAccountMeta.meta_id) \
                .all()
            return [_meta_to_domain(db_meta) for db_meta in db_metas]

    def delete_account_meta(self, meta: domain.AccountMeta) -> None:
        """
        Delete a meta record.

        Deleting a record that no longer exists is not an error.

        Raises
        ------
        :class:`MetaDeletionFailed`
            The database refused the deletion.
        """
        try:
            if meta.meta == domain.VERIFICATION_KEY:
                self.codes.consume(meta.value, guid=meta.guid)
                return
            with util.transaction(self._session) as session:
                query = session.query(DBAccountMeta) \
                    .filter(DBAccountMeta.guid == meta.guid) \
                    .filter(DBAccountMeta.meta == meta.meta)
                if meta.meta_id is not None:
                    query = query.filter(DBAccountMeta.meta_id == meta.meta_id)
                else:
                    query = query.filter(DBAccountMeta.value == meta.value)
                query.delete(synchronize_session=False)
                session.commit()
        except NoSuchCode:
            logger.debug('Verification code for %s already consumed',
                         meta.guid)
        except SQLAlchemyError as e:
            raise MetaDeletionFailed(f'Failed to delete: {e}') from e

    def issue_verification_code(self, guid: str) -> domain.VerificationCode:
        """Issue a new single-use verification code for an account."""
        return self.codes.issue(guid)
