"""Tests for :mod:`members.services.notify`."""

import smtplib
from unittest import TestCase, mock

from ... import domain
from .. import notify

ACCOUNT = domain.Account(guid='G1', username='ada',
                         displayname='Ada Lovelace', email='ada@lovelace.org')
URL = 'https://members.org/profile/verify?code=' + 'a' * 40


class TestSendVerification(TestCase):
    """Verification links are logged, and mailed when SMTP is configured."""

    @mock.patch(f'{notify.__name__}.smtplib.SMTP')
    def test_no_smtp_host(self, mock_smtp):
        """Without a host, the link is only logged."""
        with self.assertLogs(notify.__name__, 'INFO') as logs:
            notify.send_verification(ACCOUNT, URL)
        self.assertIn(URL, logs.output[0])
        self.assertEqual(mock_smtp.call_count, 0)

    @mock.patch(f'{notify.__name__}.smtplib.SMTP')
    def test_send(self, mock_smtp):
        """The message is addressed to the member and carries the link."""
        conn = mock_smtp.return_value.__enter__.return_value
        notify.send_verification(ACCOUNT, URL, host='smtp.members.org',
                                 port=2525, sender='noreply@members.org')

        mock_smtp.assert_called_once_with(host='smtp.members.org', port=2525)
        message = conn.send_message.call_args[0][0]
        self.assertEqual(message['To'], 'ada@lovelace.org')
        self.assertEqual(message['From'], 'noreply@members.org')
        self.assertIn(URL, message.get_content())

    @mock.patch(f'{notify.__name__}.smtplib.SMTP')
    def test_delivery_failure(self, mock_smtp):
        """A delivery problem is logged, and does not propagate."""
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, 'nope')
        with self.assertLogs(notify.__name__, 'ERROR'):
            notify.send_verification(ACCOUNT, URL, host='smtp.members.org')
