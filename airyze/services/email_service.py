"""Alert email rendering and SMTP delivery."""

from __future__ import annotations

import logging
import re
import smtplib
import socket
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Callable, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from airyze.core.config import Settings
from airyze.core.errors import AppError
from airyze.services.aqi_service import aqi_category

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
MAX_EMAIL_RECOMMENDATIONS = 6

SUBJECTS = {
    "daily": "Daily AQI Report for {city}",
    "instant": "Your AQI Report for {city}",
    "change": "AQI Alert: Air Quality Changed in {city}",
}


class EmailError(AppError):
    status_code = 500
    default_message = "Failed to send email. Please try again later."


class EmailNotConfiguredError(EmailError):
    status_code = 503
    default_message = "Email service is not configured. Please contact the administrator."


class EmailNetworkError(EmailError):
    status_code = 503
    default_message = "Unable to connect to email server. Please check your network connection or firewall settings."


class EmailAuthError(EmailError):
    status_code = 500
    default_message = "Email authentication failed. Please check email credentials."


class EmailSendError(EmailError):
    pass


_CODE_STYLE = "background-color: #f0f0f0; padding: 2px 6px; border-radius: 3px; font-family: monospace;"
_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"\*([^*]+)\*"), r"<em>\1</em>"),
    (re.compile(r"_([^_]+)_"), r"<em>\1</em>"),
    (re.compile(r"`([^`]+)`"), rf'<code style="{_CODE_STYLE}">\1</code>'),
    (re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE), r"<li>\1</li>"),
    (re.compile(r"^[-*]\s+(.+)$", re.MULTILINE), r"<li>\1</li>"),
)


def markdown_to_html(text: str | None) -> Markup:
    """Convert the small markdown subset AI providers emit (bold, italic, code, lists, newlines).

    Input is HTML-escaped first, so only the markup produced here survives.
    """
    if not text or not isinstance(text, str):
        return Markup("")
    html = str(escape(text))
    for pattern, replacement in _MARKDOWN_RULES:
        html = pattern.sub(replacement, html)
    html = html.replace("\n\n", '</p><p style="margin: 10px 0;">').replace("\n", "<br>")
    return Markup(html)


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)
_env.filters["markdown"] = markdown_to_html


def alert_subject(kind: str, city: str) -> str:
    return SUBJECTS.get(kind, SUBJECTS["change"]).format(city=city)


def render_alert_email(
    *,
    name: str,
    city: str,
    aqi: int,
    kind: str,
    recommendations: Sequence[str],
    personalized: bool = False,
    prose: str | None = None,
    personal_note: str | None = None,
    health_sections: Sequence[dict[str, Any]] = (),
    dashboard_url: str | None = None,
) -> tuple[str, str]:
    """Return ``(subject, html)`` for an AQI alert."""
    template = _env.get_template("alert_email.html")
    html = template.render(
        name=name,
        city=city,
        aqi=aqi,
        category=aqi_category(aqi),
        prose=markdown_to_html(prose) if prose else None,
        personal_note=personal_note,
        health_sections=list(health_sections),
        recommendations=list(recommendations)[:MAX_EMAIL_RECOMMENDATIONS],
        personalized=personalized,
        dashboard_url=dashboard_url,
    )
    return alert_subject(kind, city), html


class Mailer:
    """SMTP sender. In mock mode messages are logged instead of sent."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str = "",
        mock_mode: bool = False,
        timeout: float = 15.0,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.mock_mode = mock_mode
        self.timeout = timeout
        self._smtp_factory = smtp_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            host=settings.email_host,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_pass,
            sender=settings.email_from,
            mock_mode=settings.email_mock_mode,
            timeout=settings.email_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)

    def _connect(self) -> smtplib.SMTP:
        if self._smtp_factory is not None:
            return self._smtp_factory(self.host, self.port, timeout=self.timeout)
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send(self, to_addr: str, subject: str, html: str) -> None:
        if self.mock_mode:
            logger.info("MOCK EMAIL (not sent) to=%s subject=%r from=%s", to_addr, subject, self.sender)
            logger.debug("MOCK EMAIL preview: %s...", html[:200])
            return

        if not self.configured:
            raise EmailNotConfiguredError()

        msg = MIMEText(html, "html", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_addr

        try:
            with self._connect() as smtp:
                if self.port != 465:
                    smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.sendmail(self.sender, [to_addr], msg.as_string())
        except Exception as exc:  # noqa: BLE001 - classified below
            raise classify_send_error(exc) from exc

        logger.info("Email sent to=%s subject=%r", to_addr, subject)

    def verify(self) -> bool:
        """Check that the SMTP server accepts our credentials."""
        if self.mock_mode:
            logger.info("Email service is in MOCK MODE - emails will be logged, not sent")
            return True
        if not self.configured:
            logger.info("Email credentials not configured")
            return False
        try:
            with self._connect() as smtp:
                if self.port != 465:
                    smtp.starttls()
                smtp.login(self.user, self.password)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email verification failed: %s", exc)
            return False
        return True


def classify_send_error(exc: BaseException) -> EmailError:
    if isinstance(exc, EmailError):
        return exc
    logger.error("Email send error: %s", exc)
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return EmailAuthError()
    if isinstance(exc, (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected, TimeoutError, ConnectionError, socket.gaierror)):
        return EmailNetworkError()
    if isinstance(exc, smtplib.SMTPException):
        return EmailSendError()
    if isinstance(exc, OSError):
        return EmailNetworkError()
    return EmailSendError()
