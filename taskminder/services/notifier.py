import asyncio
import logging
from email.mime.text import MIMEText
from typing import Protocol

import aiosmtplib

from taskminder.config import Settings
from taskminder.exceptions import NotifierError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> None: ...


class EmailNotifier:
    """
    Sends plain-text email over SMTP with aiosmtplib.

    Transport failures are raised as NotifierError; callers decide whether to log
    or propagate. With no EMAIL_HOST configured, mail is skipped and logged.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_message(self, recipient: str, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain")
        msg["From"] = self.settings.EMAIL_FROM or self.settings.EMAIL_USER or ""
        msg["To"] = recipient
        msg["Subject"] = subject
        return msg

    async def send(self, recipient: str, subject: str, body: str) -> None:
        if not self.settings.EMAIL_HOST:
            logger.warning("Email skipped, EMAIL_HOST not configured: %s", subject[:50])
            return

        msg = self.build_message(recipient, subject, body)
        try:
            # STARTTLS, as used on the submission port 587
            await aiosmtplib.send(
                msg,
                hostname=self.settings.EMAIL_HOST,
                port=self.settings.EMAIL_PORT,
                username=self.settings.EMAIL_USER,
                password=self.settings.EMAIL_PASS,
                start_tls=True,
                timeout=10,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            raise NotifierError(f"Failed to send email to {recipient}: {e}") from e

        logger.info("Email sent to %s: %s", recipient, subject)
