"""
SMTP delivery.
"""

import logging
import smtplib
import socket
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Iterable, Optional

from github_agent.config import settings
from github_agent.exceptions import EmailDeliveryError, EmailNotConfiguredError
from github_agent.mail.renderer import html_to_text
from github_agent.models.db import EmailSettings
from github_agent.security import decrypt_secret

logger = logging.getLogger(__name__)


@dataclass
class SMTPConfig:
    host: str
    port: int
    secure: bool
    user: str
    password: str
    sender_email: str
    sender_name: str = "GitHub Helper"
    timeout: float = 30.0


def friendly_smtp_error(error: Exception) -> str:
    """Message for an SMTP failure that is safe to show in the UI."""
    if isinstance(error, smtplib.SMTPAuthenticationError):
        return "Authentication failed. Please check your email and password."
    if isinstance(error, socket.gaierror):
        return "SMTP server not found. Please check the host address."
    if isinstance(error, ConnectionRefusedError):
        return "Connection refused. Please check the port and security settings."
    if isinstance(error, (socket.timeout, TimeoutError)):
        return "Connection timed out. Please check the host and port."
    return str(error) or "Connection failed"


def _as_list(value: Optional[Iterable[str] | str]) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class EmailSender:
    """Sends multipart email through one SMTP account."""

    def __init__(self, config: SMTPConfig):
        self.config = config

    @classmethod
    def from_settings(cls, email_settings: EmailSettings) -> "EmailSender":
        """
        Build a sender from the user's stored email settings.

        Raises:
            CredentialEncryptionError: If the stored password cannot be decrypted
        """
        return cls(
            SMTPConfig(
                host=email_settings.smtp_host,
                port=email_settings.smtp_port,
                secure=email_settings.smtp_secure,
                user=email_settings.smtp_user,
                password=decrypt_secret(email_settings.smtp_password) or "",
                sender_email=email_settings.sender_email,
                sender_name=email_settings.sender_name,
            )
        )

    @classmethod
    def from_env(cls) -> "EmailSender":
        """
        Sender for system mail (integration requests), configured by SMTP_* env vars.

        Raises:
            EmailNotConfiguredError: If SMTP_HOST or SMTP_USER is not set
        """
        if not settings.smtp_host or not settings.smtp_user:
            raise EmailNotConfiguredError("SMTP_HOST and SMTP_USER must be set")
        return cls(
            SMTPConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                secure=settings.smtp_secure,
                user=settings.smtp_user,
                password=settings.smtp_password,
                sender_email=settings.smtp_sender_email or settings.smtp_user,
            )
        )

    def _connect(self) -> smtplib.SMTP:
        config = self.config
        if config.secure:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                config.host, config.port, timeout=config.timeout
            )
        else:
            server = smtplib.SMTP(config.host, config.port, timeout=config.timeout)
            server.starttls()
        if config.user:
            server.login(config.user, config.password)
        return server

    def verify(self) -> None:
        """
        Open and authenticate an SMTP connection without sending anything.

        Raises:
            EmailDeliveryError: With a user-facing message on any failure
        """
        try:
            server = self._connect()
            server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP verification failed for %s: %s", self.config.host, e)
            raise EmailDeliveryError(friendly_smtp_error(e)) from e

    def send(
        self,
        to: Iterable[str] | str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        cc: Optional[Iterable[str] | str] = None,
        bcc: Optional[Iterable[str] | str] = None,
    ) -> str:
        """
        Send an email with plain-text and HTML alternatives.

        Args:
            to: Recipient address(es)
            subject: Subject line
            html: HTML body
            text: Plain-text body (derived from the HTML when omitted)
            cc: Carbon-copy address(es)
            bcc: Blind carbon-copy address(es)

        Returns:
            The Message-ID of the sent email

        Raises:
            EmailDeliveryError: If the SMTP conversation fails
        """
        to_list, cc_list, bcc_list = _as_list(to), _as_list(cc), _as_list(bcc)
        if not to_list:
            raise EmailDeliveryError("At least one recipient is required")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.config.sender_name, self.config.sender_email))
        msg["To"] = ", ".join(to_list)
        if cc_list:
            msg["Cc"] = ", ".join(cc_list)
        msg["Date"] = formatdate(localtime=True)
        message_id = make_msgid()
        msg["Message-ID"] = message_id

        msg.attach(MIMEText(text or html_to_text(html), "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            server = self._connect()
            try:
                server.send_message(msg, to_addrs=to_list + cc_list + bcc_list)
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email %r to %s: %s", subject, to_list, e)
            raise EmailDeliveryError(friendly_smtp_error(e)) from e

        logger.info("Email sent to %s (%s)", ", ".join(to_list), message_id)
        return message_id
