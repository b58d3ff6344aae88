"""
Email notifications sent after an intake is submitted.

Delivery goes through an ``EmailProvider``; the provider is chosen by the
``EMAIL_PROVIDER`` setting (``null`` logs messages instead of sending them,
``smtp`` delivers through ``SMTP_HOST``). Sending never raises: callers get a
``DeliveryResult`` and the submission result does not depend on it.
"""
import html
import logging
import smtplib
import ssl
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from functools import lru_cache
from typing import List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """Email message to be sent."""
    to: str
    subject: str
    body_text: str
    body_html: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None

    def validate(self) -> None:
        if not self.to:
            raise ValueError("Recipient email (to) is required")
        if not self.subject:
            raise ValueError("Subject is required")


@dataclass
class DeliveryResult:
    success: bool
    provider: str
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        pass


class NullEmailProvider(EmailProvider):
    """Logs messages instead of delivering them; keeps them for inspection."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    @property
    def provider_name(self) -> str:
        return "null"

    def send(self, message: EmailMessage) -> DeliveryResult:
        message.validate()
        self.sent.append(message)
        logger.info(f"Email to {message.to} not delivered (null provider): {message.subject}")
        return DeliveryResult(success=True, provider=self.provider_name, message_id=f"null-{uuid.uuid4()}")


class SMTPEmailProvider(EmailProvider):
    """SMTP delivery with STARTTLS (port 587) or implicit SSL (port 465)."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        use_ssl: Optional[bool] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username or settings.SMTP_USERNAME
        self.password = password or settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.use_ssl = settings.SMTP_USE_SSL if use_ssl is None else use_ssl
        self.from_email = from_email or settings.EMAIL_FROM
        self.from_name = from_name or settings.FIRM_NAME

    @property
    def provider_name(self) -> str:
        return "smtp"

    def send(self, message: EmailMessage) -> DeliveryResult:
        if not self.host:
            return DeliveryResult(
                success=False,
                provider=self.provider_name,
                error_message="SMTP not configured (missing SMTP_HOST)",
            )
        message.validate()

        msg = MIMEMultipart("alternative")
        from_email = message.from_email or self.from_email
        msg["From"] = formataddr((message.from_name or self.from_name, from_email))
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        if message.body_html:
            msg.attach(MIMEText(message.body_html, "html", "utf-8"))

        try:
            if self.use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                    self._deliver(server, from_email, message.to, msg)
            else:
                with smtplib.SMTP(self.host, self.port) as server:
                    if self.use_tls:
                        server.starttls(context=ssl.create_default_context())
                    self._deliver(server, from_email, message.to, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {message.to} failed: {e}")
            return DeliveryResult(success=False, provider=self.provider_name, error_message=str(e))

        logger.info(f"SMTP: Email sent to {message.to}")
        return DeliveryResult(success=True, provider=self.provider_name, message_id=f"smtp-{uuid.uuid4()}")

    def _deliver(self, server: smtplib.SMTP, from_email: str, to: str, msg: MIMEMultipart) -> None:
        if self.username and self.password:
            server.login(self.username, self.password)
        server.sendmail(from_email, [to], msg.as_string())


@lru_cache()
def get_email_provider() -> EmailProvider:
    """FastAPI dependency returning the configured provider."""
    if settings.EMAIL_PROVIDER == "smtp":
        return SMTPEmailProvider()
    return NullEmailProvider()


# ============================================================================
# TEMPLATES
# ============================================================================

@dataclass
class IntakeSummary:
    """What staff need to know about a fresh submission."""
    client_id: str
    client_name: str
    client_email: Optional[str]
    client_phone: Optional[str]
    filing_status: Optional[str]
    dependent_count: int
    income_sources: List[str]
    submitted_at: datetime


def _wrap_html(content: str) -> str:
    firm = html.escape(settings.FIRM_NAME)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: Georgia, serif; max-width: 600px; margin: 0 auto;\">"
        f"<div style=\"background: #2D4A43; color: white; padding: 24px; text-align: center;\"><h1>{firm}</h1></div>"
        f"<div style=\"padding: 24px;\">{content}</div>"
        f"<div style=\"text-align: center; color: #6B7280; font-size: 12px;\"><p>{firm}</p>"
        "<p>This is an automated message from your CRM system.</p></div>"
        "</body></html>"
    )


def intake_notification_email(summary: IntakeSummary, to: str) -> EmailMessage:
    """Staff notification: ``New Intake Submission: <name>``."""
    dashboard_url = f"{settings.APP_URL}/dashboard/clients/{summary.client_id}"
    dependents = f"Yes ({summary.dependent_count})" if summary.dependent_count else "No"
    filing = summary.filing_status or "Not specified"
    submitted = summary.submitted_at.strftime("%Y-%m-%d %H:%M UTC")
    incomes = summary.income_sources or ["None specified"]

    text_lines = [
        settings.FIRM_NAME,
        "New Client Intake Received",
        "",
        "A new client has submitted their tax intake form.",
        "",
        "CLIENT INFORMATION",
        f"Name: {summary.client_name}",
        f"Email: {summary.client_email or '-'}",
    ]
    if summary.client_phone:
        text_lines.append(f"Phone: {summary.client_phone}")
    text_lines += [
        f"Filing Status: {filing}",
        f"Dependents: {dependents}",
        f"Submitted: {submitted}",
        "",
        "INCOME SOURCES",
        *(f"- {source}" for source in incomes),
        "",
        f"View in dashboard: {dashboard_url}",
    ]

    rows = [
        ("Name", summary.client_name),
        ("Email", summary.client_email or "-"),
        ("Phone", summary.client_phone),
        ("Filing Status", filing),
        ("Dependents", dependents),
        ("Submitted", submitted),
    ]
    table = "".join(
        f"<tr><td style=\"color: #6B7280;\">{label}:</td><td>{html.escape(value)}</td></tr>"
        for label, value in rows if value
    )
    income_items = "".join(f"<li>{html.escape(source)}</li>" for source in incomes)
    content = (
        "<h2>New Client Intake Received</h2>"
        "<p>A new client has submitted their tax intake form. Please review the details below.</p>"
        f"<table>{table}</table>"
        f"<h3>Income Sources</h3><ul>{income_items}</ul>"
        f"<p><a href=\"{html.escape(dashboard_url)}\">View Client Profile</a></p>"
    )
    return EmailMessage(
        to=to,
        subject=f"New Intake Submission: {summary.client_name}",
        body_text="\n".join(text_lines),
        body_html=_wrap_html(content),
    )


def client_welcome_email(client_name: str, to: str) -> EmailMessage:
    firm = settings.FIRM_NAME
    steps = [
        "Our team will review your submitted information",
        "We'll reach out if we need any additional documents",
        "You'll receive updates as we prepare your return",
        "We'll schedule a review call before filing",
    ]
    intro = (
        f"Thank you for choosing {firm} for your tax preparation needs. "
        "We've received your intake form and our team will review your information shortly."
    )
    text = "\n".join([
        firm,
        "",
        f"Welcome, {client_name}!",
        "",
        intro,
        "",
        "WHAT HAPPENS NEXT?",
        *(f"{i}. {step}" for i, step in enumerate(steps, start=1)),
        "",
        "If you have any questions in the meantime, please don't hesitate to reach out.",
        "",
        "Best regards,",
        f"The {firm} Team",
    ])
    content = (
        f"<h2>Welcome, {html.escape(client_name)}!</h2>"
        f"<p>{html.escape(intro)}</p>"
        "<h3>What Happens Next?</h3>"
        "<ol>" + "".join(f"<li>{html.escape(step)}</li>" for step in steps) + "</ol>"
        "<p>If you have any questions in the meantime, please don't hesitate to reach out.</p>"
        f"<p>Best regards,<br><strong>The {html.escape(firm)} Team</strong></p>"
    )
    return EmailMessage(
        to=to,
        subject=f"Welcome to {firm}",
        body_text=text,
        body_html=_wrap_html(content),
    )


def send_safely(provider: EmailProvider, message: EmailMessage) -> DeliveryResult:
    """Send a message, turning any failure into an unsuccessful result."""
    try:
        result = provider.send(message)
    except (ValueError, OSError, smtplib.SMTPException) as e:
        logger.error(f"Sending '{message.subject}' to {message.to} failed: {e}")
        return DeliveryResult(success=False, provider=provider.provider_name, error_message=str(e))
    if not result.success:
        logger.warning(f"'{message.subject}' to {message.to} not delivered: {result.error_message}")
    return result
