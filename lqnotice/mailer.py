"""Compose plain-text e-mail and deliver it over SMTP."""

from __future__ import annotations

import smtplib
import ssl
from collections.abc import Iterable
from dataclasses import dataclass

SEND_TIMEOUT = 30


@dataclass
class SmtpConfig:
    """Connection settings for an SMTP server."""

    server: str = ""
    port: int = 465
    username: str = ""
    password: str = ""
    use_ssl: bool = True


class MailError(Exception):
    """Raised when a message cannot be delivered."""


def build_email_header(sender: str, recipients: Iterable[str], subject: str) -> str:
    """Return the header block of a UTF-8 plain-text message, ending in a blank line."""
    return (
        f"From: {sender}\r\n"
        f"To: {', '.join(recipients)}\r\n"
        f"Subject: {subject}\r\n"
        "MIME-Version: 1.0\r\n"
        "Content-Type: text/plain; charset=UTF-8\r\n"
        "Content-Transfer-Encoding: 8bit\r\n"
        "\r\n"
    )


def build_email(sender: str, recipients: Iterable[str], subject: str, message: str) -> str:
    """Return the full message text: header, body and a closing line break."""
    return build_email_header(sender, recipients, subject) + message + "\r\n"


def send_mail(
    config: SmtpConfig,
    recipients: str | Iterable[str],
    subject: str,
    message: str,
) -> None:
    """Send ``message`` to one recipient or to several.

    The sender is the configured user name. With ``use_ssl`` the connection
    uses implicit TLS with certificate and host verification; otherwise a
    plain SMTP connection is used. Any failure raises :class:`MailError`.
    """
    recipient_list = [recipients] if isinstance(recipients, str) else list(recipients)
    email_text = build_email(config.username, recipient_list, subject, message)

    if config.use_ssl:
        connection = smtplib.SMTP_SSL(
            config.server,
            config.port,
            timeout=SEND_TIMEOUT,
            context=ssl.create_default_context(),
        )
    else:
        connection = smtplib.SMTP(config.server, config.port, timeout=SEND_TIMEOUT)

    try:
        with connection as smtp:
            if config.username:
                smtp.login(config.username, config.password)
            refused = smtp.sendmail(
                config.username, recipient_list, email_text.encode("utf-8")
            )
    except (smtplib.SMTPException, OSError) as exc:
        raise MailError(f"Mail sending failed: {exc}") from exc

    if refused:
        raise MailError(f"Mail sending failed: recipients refused: {', '.join(refused)}")