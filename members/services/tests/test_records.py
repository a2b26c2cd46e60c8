"""Tests for :class:`members.services.records.Records`."""

from datetime import timedelta
from unittest import TestCase

from ... import domain
from ...exceptions import DuplicateAccount, NoSuchAccount
from .. import util
from ..models import DBAccountMeta
from ..records import Records
from .util import temporary_db


def _account(guid='G1', username='ada', email='ada@lovelace.org',
             **kwargs) -> domain.Account:
    return domain.Account(guid=guid, username=username,
                          displayname='Ada Lovelace', email=email, **kwargs)


class TestAccounts(TestCase):
    """Creating, loading and updating accounts."""

    def test_create_and_load(self):
        """A created account can be loaded by GUID, e-mail or username."""
        with temporary_db() as session:
            records = Records(session)
            created = records.create_account(_account())

            self.assertEqual(created.guid, 'G1')
            self.assertFalse(created.verified)
            self.assertTrue(created.enabled)
            self.assertIsNotNone(created.created.tzinfo, 'Times are aware')
            self.assertEqual(records.get_account_by_guid('G1'), created)
            self.assertEqual(records.get_account_by_email('ada@lovelace.org'),
                             created)
            self.assertEqual(records.get_account_by_username('ada'), created)
            self.assertTrue(records.email_exists('ada@lovelace.org'))
            self.assertTrue(records.username_exists('ada'))
            self.assertFalse(records.email_exists('bob@lovelace.org'))
            self.assertFalse(records.username_exists('bob'))

    def test_no_such_account(self):
        """Loading an unknown account is an error."""
        with temporary_db() as session:
            with self.assertRaises(NoSuchAccount):
                Records(session).get_account_by_guid('nope')

    def test_duplicate_email(self):
        """E-mail addresses are unique."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            with self.assertRaises(DuplicateAccount):
                records.create_account(_account(guid='G2', username='bob'))
            self.assertFalse(records.username_exists('bob'),
                             'The failed write was rolled back')
            records.create_account(_account(guid='G3', username='bob',
                                            email='bob@lovelace.org'))
            self.assertTrue(records.username_exists('bob'),
                            'The session is still usable')

    def test_duplicate_username(self):
        """Usernames are unique."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            with self.assertRaises(DuplicateAccount):
                records.create_account(_account(guid='G2',
                                                email='bob@lovelace.org'))

    def test_save_account(self):
        """Changes are persisted."""
        with temporary_db() as session:
            records = Records(session)
            account = records.create_account(_account())
            seen = util.now()
            records.save_account(account._replace(displayname='Countess',
                                                  lastseen=seen,
                                                  lastip='10.0.0.1'))
            loaded = records.get_account_by_guid('G1')
            self.assertEqual(loaded.displayname, 'Countess')
            self.assertEqual(loaded.lastseen, seen)
            self.assertEqual(loaded.lastip, '10.0.0.1')

    def test_verified_is_never_cleared(self):
        """Once verified, an account stays verified."""
        with temporary_db() as session:
            records = Records(session)
            account = records.create_account(_account())
            verified = records.save_account(account.verify())
            self.assertTrue(verified.verified)

            records.save_account(verified._replace(verified=False))
            self.assertTrue(records.get_account_by_guid('G1').verified)

    def test_save_with_taken_email(self):
        """Taking another account's e-mail address is refused."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            bob = records.create_account(_account(guid='G2', username='bob',
                                                  email='bob@lovelace.org'))
            with self.assertRaises(DuplicateAccount):
                records.save_account(bob._replace(email='ada@lovelace.org'))
            self.assertEqual(records.get_account_by_guid('G2').email,
                             'bob@lovelace.org')


class TestAccountMeta(TestCase):
    """Key/value records attached to accounts."""

    def test_add_and_get(self):
        """Meta records are multi-valued."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            records.add_account_meta('G1', domain.PROVIDER_KEY, 'github:1')
            records.add_account_meta('G1', domain.PROVIDER_KEY, 'orcid:2')

            metas = records.get_account_meta('G1', domain.PROVIDER_KEY)
            self.assertEqual([m.value for m in metas],
                             ['github:1', 'orcid:2'])
            self.assertEqual(records.get_account_meta('G1', 'other'), [])

    def test_values_in_creation_order(self):
        """Matches across accounts come earliest first."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            records.create_account(_account(guid='G2', username='bob',
                                            email='bob@lovelace.org'))
            later = util.to_db(util.now())
            earlier = util.to_db(util.now() - timedelta(hours=1))
            session.add(DBAccountMeta(guid='G1', meta='k', value='v',
                                      created=later))
            session.add(DBAccountMeta(guid='G2', meta='k', value='v',
                                      created=earlier))
            session.commit()

            metas = records.get_account_meta_values('k', 'v')
            self.assertEqual([m.guid for m in metas], ['G2', 'G1'])

    def test_delete(self):
        """A meta record can be deleted."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            meta = records.add_account_meta('G1', domain.AVATAR_KEY, 'a.png')
            records.add_account_meta('G1', domain.AVATAR_KEY, 'b.png')

            records.delete_account_meta(meta)
            remaining = records.get_account_meta('G1', domain.AVATAR_KEY)
            self.assertEqual([m.value for m in remaining], ['b.png'])

    def test_verification_codes_through_meta(self):
        """Verification codes are exposed as verification-key meta."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            issued = records.issue_verification_code('G1')

            metas = records.get_account_meta_values(domain.VERIFICATION_KEY,
                                                    issued.code)
            self.assertEqual(len(metas), 1)
            self.assertEqual(metas[0].guid, 'G1')
            self.assertEqual(metas[0].meta, domain.VERIFICATION_KEY)
            self.assertEqual(metas[0].value, issued.code)
            self.assertEqual(
                records.get_account_meta('G1', domain.VERIFICATION_KEY),
                metas
            )

            records.delete_account_meta(metas[0])
            self.assertEqual(
                records.get_account_meta_values(domain.VERIFICATION_KEY,
                                                issued.code),
                []
            )
            # Already consumed; not an error.
            records.delete_account_meta(metas[0])

    def test_cannot_add_verification_meta(self):
        """Verification codes are only issued through the code store."""
        with temporary_db() as session:
            records = Records(session)
            records.create_account(_account())
            with self.assertRaises(ValueError):
                records.add_account_meta('G1', domain.VERIFICATION_KEY,
                                         'a' * 40)
