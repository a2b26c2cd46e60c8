"""Sends verification links to members by e-mail."""

import logging
import smtplib
from email.message import EmailMessage

from .. import domain

logger = logging.getLogger(__name__)


class MailSession(object):
    """An open session with an SMTP service."""

    def __init__(self, host: str = "", port: int = 0) -> None:
        self._host = host
        self._port = port

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port)

    def send_message(self, message: EmailMessage) -> None:
        """Send a single message, closing the connection afterwards."""
        with self._new_connection() as conn:
            conn.send_message(message)


def verification_message(account: domain.Account, url: str,
                         sender: str) -> EmailMessage:
    """Compose the message asking a member to verify their address."""
    message = EmailMessage()
    message['Subject'] = 'Please verify your e-mail address'
    message['From'] = sender
    message['To'] = account.email
    message.set_content(
        f'Hello {account.displayname},\n\n'
        f'Please confirm your e-mail address by visiting:\n\n{url}\n'
    )
    return message


def send_verification(account: domain.Account, url: str, host: str = '',
                      port: int = 25, sender: str = '') -> None:
    """
    Let a member know how to verify their account.

    The link is always logged. If ``host`` is empty, nothing is sent.
    Delivery problems are logged and do not propagate; the member can ask for
    a new code.
    """
    logger.info('Verification link for %s: %s', account.guid, url)
    if not host:
        return
    try:
        MailSession(host, port).send_message(
            verification_message(account, url, sender)
        )
    except (smtplib.SMTPException, OSError) as e:
        logger.error('Could not send verification to %s: %s',
                     account.guid, e)
