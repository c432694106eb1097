"""
OTP delivery - email over SMTP, SMS over the gateway's HTTP API.

When a channel is not configured and the app runs in debug mode the code is
logged instead of sent, so local signups still work.
"""

import smtplib
from email.message import EmailMessage

import requests

from app.core.config import get_settings
from app.core.exceptions import IntegrationError
from app.core.logger import get_logger

settings = get_settings()
log = get_logger(__name__)


def _otp_text(code: str) -> str:
    return (
        f"Your StudentNest verification code is {code}. "
        f"It expires in {settings.otp_expiry_minutes} minutes. Do not share it with anyone."
    )


def send_email_otp(email: str, code: str) -> None:
    """Send a verification code by email."""
    if not settings.smtp_user:
        if settings.debug:
            log.warning("SMTP not configured, email OTP for %s: %s", email, code)
            return
        raise IntegrationError("Email service is not configured")

    message = EmailMessage()
    message["Subject"] = "Your StudentNest verification code"
    message["From"] = settings.smtp_from
    message["To"] = email
    message.set_content(_otp_text(code))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.http_timeout) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        log.error("Failed to send OTP email to %s: %s", email, e)
        raise IntegrationError("Failed to send verification email")
    log.info("OTP email sent to %s", email)


def send_sms_otp(phone: str, code: str) -> None:
    """Send a verification code by SMS."""
    if not settings.sms_api_url:
        if settings.debug:
            log.warning("SMS gateway not configured, phone OTP for %s: %s", phone, code)
            return
        raise IntegrationError("SMS service is not configured")

    try:
        response = requests.post(
            settings.sms_api_url,
            headers={"Authorization": f"Bearer {settings.sms_api_key}"},
            json={"to": phone, "sender": settings.sms_sender_id, "message": _otp_text(code)},
            timeout=settings.http_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        log.error("Failed to send OTP SMS to %s: %s", phone, e)
        raise IntegrationError("Failed to send verification SMS")
    log.info("OTP SMS sent to %s", phone)
