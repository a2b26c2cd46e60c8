"""SQLAlchemy models for member accounts."""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, \
    String, Text
from sqlalchemy.orm import relationship

db: SQLAlchemy = SQLAlchemy()


class DBAccount(db.Model):  # type: ignore
    """
    Member accounts.

    +-------------+--------------+------+-----+---------+
    | Field       | Type         | Null | Key | Default |
    +-------------+--------------+------+-----+---------+
    | guid        | varchar(36)  | NO   | PRI | NULL    |
    | username    | varchar(32)  | NO   | UNI |         |
    | displayname | varchar(128) | NO   |     |         |
    | email       | varchar(128) | NO   | UNI |         |
    | password    | varchar(255) | YES  |     | NULL    |
    | enabled     | tinyint(1)   | NO   |     | 1       |
    | verified    | tinyint(1)   | NO   |     | 0       |
    | created     | datetime     | NO   |     | NULL    |
    | lastseen    | datetime     | YES  |     | NULL    |
    | lastip      | varchar(64)  | YES  |     | NULL    |
    +-------------+--------------+------+-----+---------+

    Times are stored as naive UTC.
    """

    __tablename__ = 'members_account'

    guid = Column(String(36), primary_key=True)
    username = Column(String(32), nullable=False, unique=True, index=True)
    displayname = Column(String(128), nullable=False, default='')
    email = Column(String(128), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    verified = Column(Boolean, nullable=False, default=False)
    created = Column(DateTime, nullable=False)
    lastseen = Column(DateTime, nullable=True)
    lastip = Column(String(64), nullable=True)

    meta = relationship('DBAccountMeta', back_populates='account',
                        cascade='all, delete-orphan')


class DBAccountMeta(db.Model):  # type: ignore
    """Ad-hoc key/value records attached to an account. Multi-valued."""

    __tablename__ = 'members_account_meta'

    meta_id = Column(Integer, primary_key=True, autoincrement=True)
    guid = Column(ForeignKey('members_account.guid'), nullable=False,
                  index=True)
    meta = Column(String(64), nullable=False, index=True)
    value = Column(Text, nullable=False, default='')
    created = Column(DateTime, nullable=False)

    account = relationship('DBAccount', back_populates='meta')


class DBVerificationCode(db.Model):  # type: ignore
    """
    Outstanding e-mail verification codes.

    Unique on ``code``, and on ``guid`` so that an account has at most one
    active code.
    """

    __tablename__ = 'members_verification_code'

    code_id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(40), nullable=False, unique=True, index=True)
    guid = Column(ForeignKey('members_account.guid'), nullable=False,
                  unique=True)
    issued_at = Column(DateTime, nullable=False)
