"""Outbound email delivery and template rendering.

Provides a small provider abstraction so the cancellation email job can
be pointed at a real SMTP server in production and at the application
log everywhere else.
"""

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr
from typing import Any
from uuid import uuid4

from app.core.config import Settings, settings
from app.fixtures.message_templates import MESSAGE_TEMPLATES

logger = logging.getLogger(__name__)


class MessageProviderError(Exception):
    """Base exception for mail provider errors."""

    pass


@dataclass
class RenderedMessage:
    """Template output ready to hand to a provider."""

    subject: str | None
    body: str
    html_body: str | None = None


def render_template(code: str, context: dict[str, Any], locale: str | None = None) -> RenderedMessage:
    """Render a template from ``MESSAGE_TEMPLATES`` with context variables.

    Args:
        code: Template code
        context: Values for the {{variable}} placeholders
        locale: Display locale, defaults to the configured one

    Returns:
        RenderedMessage with subject, text body and optional HTML body

    Raises:
        ValueError: If no template exists for the code and locale
    """
    locale = locale or settings.display_locale
    try:
        template = MESSAGE_TEMPLATES[code][locale]
    except KeyError:
        raise ValueError(f"No template found for {code} ({locale})")

    def _fill(text: str | None) -> str | None:
        if text is None:
            return None
        for key, value in context.items():
            text = text.replace(f"{{{{{key}}}}}", str(value))
        return text

    return RenderedMessage(
        subject=_fill(template["subject"]),
        body=_fill(template["body"]),
        html_body=_fill(template["html_body"]),
    )


class MailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    async def send(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None = None,
        **kwargs: Any,
    ) -> tuple[str, dict]:
        """Send a message and return (provider_message_id, metadata).

        Raises MessageProviderError on failure.
        """
        pass


class LogMailProvider(MailProvider):
    """Writes outgoing mail to the application log instead of sending it."""

    def __init__(self, from_address: str = "") -> None:
        self.from_address = from_address

    async def send(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None = None,
        **kwargs: Any,
    ) -> tuple[str, dict]:
        """Log the email."""
        logger.info(f"Sending email to {recipient}: {subject}")

        message_id = f"log_{uuid4().hex[:16]}"

        return message_id, {
            "provider": "log",
            "from": self.from_address,
            "to": recipient,
            "has_html": html_body is not None,
        }


class SMTPMailProvider(MailProvider):
    """Email provider talking to an SMTP server.

    ``smtplib`` is blocking, so delivery runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        from_address: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    def _build_message(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject or ""
        msg["From"] = self.from_address
        msg["To"] = recipient
        msg.attach(MIMEText(body, "plain", "utf-8"))
        if html_body:
            msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _deliver(self, recipient: str, msg: MIMEMultipart) -> None:
        if self.port == 465:
            server = smtplib.SMTP_SSL(
                self.host, self.port, context=ssl.create_default_context(), timeout=self.timeout
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        try:
            if self.port != 465 and self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(
                parseaddr(self.from_address)[1],
                [parseaddr(recipient)[1]],
                msg.as_string(),
            )
        finally:
            server.quit()

    async def send(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None = None,
        **kwargs: Any,
    ) -> tuple[str, dict]:
        """Send email over SMTP."""
        msg = self._build_message(recipient, subject, body, html_body)

        try:
            await asyncio.to_thread(self._deliver, recipient, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MessageProviderError(f"SMTP delivery to {recipient} failed: {e}") from e

        logger.info(f"Sent email to {recipient} via {self.host}")

        return f"smtp_{uuid4().hex[:16]}", {
            "provider": "smtp",
            "from": self.from_address,
            "to": recipient,
            "has_html": html_body is not None,
        }


def build_mail_provider(config: Settings) -> MailProvider:
    """Create the provider selected by ``mail_backend``."""
    if config.mail_backend == "smtp":
        return SMTPMailProvider(
            host=config.mail_host,
            port=config.mail_port,
            username=config.mail_user,
            password=config.mail_password,
            use_tls=config.mail_use_tls,
            from_address=config.mail_from,
            timeout=config.mail_timeout_seconds,
        )
    return LogMailProvider(from_address=config.mail_from)


def get_mail_provider() -> MailProvider:
    """Dependency returning the configured mail provider."""
    return build_mail_provider(settings)
