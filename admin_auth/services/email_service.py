"""
Email service.

Handles sending emails via SMTP using aiosmtplib for async support.
`EmailSender` renders the security emails (login notification, alerts,
reset codes, approval decisions ...) and is only ever called from the
notification worker, never inline from a request.

Every interpolated value that came from a user or a request is escaped.
"""

import html
import logging
from datetime import datetime
from email.message import EmailMessage

import aiosmtplib

from admin_auth.core.config import Settings

logger = logging.getLogger(__name__)


async def send_email(config: Settings, to: str, subject: str, html_body: str) -> None:
    """Send an HTML email via the configured SMTP server."""
    if not config.EMAIL_ENABLED:
        logger.warning("Email delivery disabled (no SENDER_EMAIL); skipping '%s' to %s", subject, to)
        return

    message = EmailMessage()
    message["From"] = config.SENDER_EMAIL
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html_body, subtype="html")

    try:
        await aiosmtplib.send(
            message,
            hostname=config.EMAIL_HOST,
            port=config.EMAIL_PORT,
            username=config.SENDER_EMAIL,
            password=config.EMAIL_PASSWORD,
            start_tls=True,
        )
        logger.info("Email sent to %s", to)
    except Exception:
        logger.exception("Failed to send email to %s", to)
        raise


def _layout(title: str, body: str, accent: str = "#2c3e50") -> str:
    return f"""\
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: {accent};">{title}</h2>
            {body}
        </div>
    </body>
    </html>
    """


def _e(value: object) -> str:
    return html.escape(str(value)) if value is not None else ""


def _fmt_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "unknown"


def _device_rows(device: dict[str, str]) -> str:
    rows = [
        ("IP address", device.get("ip")),
        ("Location", device.get("location")),
        ("Browser", device.get("browser")),
        ("Operating system", device.get("os")),
        ("Device", device.get("device_type")),
    ]
    cells = "".join(
        f"<tr><td style=\"padding: 4px 12px 4px 0; color: #7f8c8d;\">{label}</td>"
        f"<td>{_e(value or 'Unknown')}</td></tr>"
        for label, value in rows
    )
    return f"<table>{cells}</table>"


class EmailSender:
    def __init__(self, config: Settings):
        self.config = config

    async def _send(self, to: str, subject: str, html_body: str) -> None:
        await send_email(self.config, to, subject, html_body)

    async def send_login_notification(
        self, *, email: str, name: str, device: dict[str, str], login_time: datetime
    ) -> None:
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>Your {_e(self.config.APP_NAME)} admin account was signed in to at
               <strong>{_fmt_time(login_time)}</strong>.</p>
            {_device_rows(device)}
            <p style="color: #7f8c8d; font-size: 13px;">
                If this wasn't you, change your password immediately and sign out all sessions.
            </p>
        """
        await self._send(email, "New sign-in to your admin account", _layout("New Sign-in", body))

    async def send_security_alert(
        self, *, email: str, name: str, threats: list[str], device: dict[str, str]
    ) -> None:
        items = "".join(f"<li>{_e(t)}</li>" for t in threats)
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>We noticed suspicious activity during a recent sign-in to your account:</p>
            <ul>{items}</ul>
            {_device_rows(device)}
            <p>If this wasn't you, reset your password right away.</p>
        """
        await self._send(email, "Security alert: suspicious sign-in activity", _layout("Security Alert", body, "#c0392b"))

    async def send_password_reset_email(self, *, email: str, name: str, code: str, ttl_minutes: int) -> None:
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>You requested to reset your password. Here's your verification code:</p>
            <h3 style="letter-spacing: 4px;">{_e(code)}</h3>
            <p>This code will expire in {ttl_minutes} minutes.</p>
            <p style="color: #7f8c8d; font-size: 13px;">If you didn't request this, please ignore this email.</p>
        """
        await self._send(email, "Your Password Reset Code", _layout("Password Reset", body))

    async def send_approval_notification(self, *, email: str, name: str, approved_by: str) -> None:
        login_link = f"{self.config.FRONTEND_URL}/admin/login"
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>Your admin account has been approved by {_e(approved_by)}. You can now sign in.</p>
            <p><a href="{_e(login_link)}">Sign in</a></p>
        """
        await self._send(email, "Your admin account has been approved", _layout("Account Approved", body, "#27ae60"))

    async def send_rejection_notification(self, *, email: str, name: str, reason: str | None) -> None:
        reason_html = f"<p>Reason: {_e(reason)}</p>" if reason else ""
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>Your request for an admin account was not approved.</p>
            {reason_html}
        """
        await self._send(email, "Your admin account request", _layout("Request Declined", body))

    async def send_new_registration_alert(
        self, *, email: str, name: str, applicant_name: str, applicant_email: str
    ) -> None:
        review_link = f"{self.config.FRONTEND_URL}/admin/pending"
        body = f"""
            <p>Hello {_e(name)},</p>
            <p><strong>{_e(applicant_name)}</strong> ({_e(applicant_email)}) registered for an
               admin account and is waiting for approval.</p>
            <p><a href="{_e(review_link)}">Review pending accounts</a></p>
        """
        await self._send(email, "New admin registration awaiting approval", _layout("New Registration", body))

    async def send_account_locked_alert(
        self, *, email: str, name: str, minutes: int, attempts: int, device: dict[str, str]
    ) -> None:
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>Your account was locked for {minutes} minutes after {attempts} failed sign-in attempts.
               The latest attempt came from:</p>
            {_device_rows(device)}
            <p>If this wasn't you, consider resetting your password.</p>
        """
        await self._send(email, "Your admin account has been locked", _layout("Account Locked", body, "#c0392b"))

    async def send_password_changed_notice(self, *, email: str, name: str, changed_at: datetime) -> None:
        body = f"""
            <p>Hello {_e(name)},</p>
            <p>The password for your admin account was changed at
               <strong>{_fmt_time(changed_at)}</strong>.</p>
            <p>If you didn't make this change, contact a principal administrator immediately.</p>
        """
        await self._send(email, "Your password was changed", _layout("Password Changed", body))
