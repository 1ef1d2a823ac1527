"""SMTP mail collaborator plus the message bodies the service sends."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape
from typing import Awaitable, Callable

import anyio

from ems.core.config import settings
from ems.core.enums import OTPPurpose

logger = logging.getLogger(__name__)

# (recipient, subject, html body) -> (sent, error message)
MailSender = Callable[[str, str, str], Awaitable[tuple[bool, str | None]]]

_PURPOSE_TITLES = {
    OTPPurpose.SIGNUP: "Sign Up",
    OTPPurpose.PASSWORD_RESET: "Password Reset",
}


async def send_email(recipient: str, subject: str, body: str) -> tuple[bool, str | None]:
    """Deliver an HTML email via SMTP on a worker thread.

    Delivery is best-effort: failures are reported to the caller as
    `(False, reason)` instead of raised, so callers decide whether the
    failure is fatal for their flow.
    """

    def _send() -> None:
        if not all([settings.SMTP_SERVER, settings.SMTP_USERNAME, settings.SMTP_PASSWORD, settings.FROM_EMAIL]):
            raise RuntimeError("SMTP settings are incomplete.")

        message = MIMEMultipart()
        message["From"] = formataddr((settings.FROM_NAME, settings.FROM_EMAIL))
        message["To"] = recipient
        message["Subject"] = subject
        message.attach(MIMEText(body, "html"))

        with smtplib.SMTP(settings.SMTP_SERVER, int(settings.SMTP_PORT), timeout=20) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(message)

    try:
        await anyio.to_thread.run_sync(_send)
        return True, None
    except (OSError, RuntimeError, smtplib.SMTPException) as exc:  # pragma: no cover - SMTP network path
        logger.error("Failed to send email %r to %s: %s", subject, recipient, exc)
        return False, str(exc)


def render_otp_email(code: str, purpose: OTPPurpose) -> tuple[str, str]:
    """Return `(subject, body)` for a one-time code message."""
    title = _PURPOSE_TITLES[OTPPurpose(purpose)]
    minutes = max(1, settings.OTP_EXPIRE_SECONDS // 60)
    subject = f"OTP for {title}"
    body = f"""
    <div>
        <h2>Your OTP for {title}</h2>
        <p>Your One Time Password is:</p>
        <h3 style="color: #2563eb; font-size: 24px; text-align: center;">{code}</h3>
        <p>This OTP will expire in {minutes} minutes.</p>
        <p>If you didn't request this, please ignore this email.</p>
    </div>
    """
    return subject, body


def render_welcome_email(name: str, email: str, temporary_password: str, manager_name: str) -> tuple[str, str]:
    """Return `(subject, body)` for the credentials mail sent to a manager-created employee."""
    subject = "Your Employee Account Has Been Created"
    body = f"""
    <div>
        <h2>Welcome to {escape(settings.FROM_NAME)}</h2>
        <p>Hello {escape(name)},</p>
        <p>Your account has been created by manager {escape(manager_name)}.</p>
        <p>Here are your login credentials:</p>
        <p>Email: {escape(email)}</p>
        <p>Password: {escape(temporary_password)}</p>
        <p>Please login and change your password immediately.</p>
        <p>Login here: <a href="{escape(settings.LOGIN_URL)}">{escape(settings.FROM_NAME)}</a></p>
    </div>
    """
    return subject, body
