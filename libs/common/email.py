"""
Email sending over SMTP.

When SMTP credentials are not configured the message is logged instead of
sent, so local runs and tests never need a mail server.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _build_message(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str],
    sender: str,
):
    if html_body:
        msg = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
    else:
        msg = MIMEText(body, "plain")

    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email
    return msg


def _deliver(to_email: str, sender_email: str, message: str) -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender_email, to_email, message)


async def send_email(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
) -> bool:
    """
    Send an email.

    Returns:
        True if the email was handed to the SMTP server, False otherwise.
    """
    settings = get_settings()

    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.warning("SMTP credentials not configured - email not sent")
        logger.info("Would have sent email to %s: %s", to_email, subject)
        logger.debug("Email body: %s...", body[:200])
        return False

    sender_email = settings.DEFAULT_FROM_EMAIL
    msg = _build_message(
        to_email,
        subject,
        body,
        html_body,
        sender=f"{settings.DEFAULT_FROM_NAME} <{sender_email}>",
    )

    try:
        logger.info("Sending email to %s: %s", to_email, subject)
        await asyncio.to_thread(_deliver, to_email, sender_email, msg.as_string())
        logger.info("Email sent successfully to %s", to_email)
        return True
    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed: %s", e)
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error("SMTP error sending email: %s", e)
        return False


def password_reset_email(reset_url: str, expires_minutes: int) -> tuple[str, str, str]:
    """Return (subject, text body, html body) for a password reset."""
    subject = "Password Reset - Swaad Sagar"
    body = (
        "You requested a password reset for your Swaad Sagar account.\n\n"
        f"Reset your password here: {reset_url}\n\n"
        f"This link will expire in {expires_minutes} minutes.\n"
        "If you didn't request this reset, please ignore this email."
    )
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #7c3aed;">Reset Your Password</h2>
      <p>You requested a password reset for your Swaad Sagar account.</p>
      <a href="{reset_url}" style="background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block; margin: 16px 0;">Reset Password</a>
      <p>This link will expire in {expires_minutes} minutes.</p>
      <p>If you didn't request this reset, please ignore this email.</p>
      <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666; font-size: 12px;">Swaad Sagar - Delicious Indian Snacks</p>
    </div>
    """
    return subject, body, html_body
