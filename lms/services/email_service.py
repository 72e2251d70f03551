import logging
import smtplib
import time
from email.message import EmailMessage

from lms.config import settings

logger = logging.getLogger(__name__)


def _send_email(to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
    if not settings.SMTP_HOST or not settings.SMTP_FROM_EMAIL:
        raise RuntimeError("SMTP is not configured (SMTP_HOST and SMTP_FROM_EMAIL are required).")

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"
    message["To"] = to_email
    message.set_content(text_body)
    if html_body:
        message.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
        smtp.ehlo()
        if settings.SMTP_USE_TLS:
            smtp.starttls()
            smtp.ehlo()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(message)


def send_login_otp_email(to_email: str, name: str | None, code: str) -> None:
    minutes = settings.OTP_EXPIRE_MINUTES
    greeting = f"Hi {name}," if name else "Hello,"
    text = (
        f"{greeting}\n\n"
        "Your OTP for login verification is:\n"
        f"{code}\n\n"
        f"This code will expire in {minutes} minutes.\n"
        "If you did not request this code, please ignore this email."
    )
    html = (
        f"<p>{greeting}</p>"
        "<p>Your OTP for login verification is:</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px\"><strong>{code}</strong></p>"
        f"<p>This code will expire in {minutes} minutes.</p>"
        "<p>If you did not request this code, please ignore this email.</p>"
    )
    _send_email(to_email=to_email, subject="Login Verification Code", text_body=text, html_body=html)


def deliver_login_otp(to_email: str, name: str | None, code: str, retry_delay_seconds: float = 1.0) -> bool:
    """Send the login code, retrying transport failures. Never raises."""
    attempts = max(1, settings.SMTP_SEND_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            send_login_otp_email(to_email, name, code)
            return True
        except RuntimeError:
            logger.exception("Cannot send login OTP email: SMTP is not configured")
            return False
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning(
                "Login OTP email delivery failed (attempt %s/%s): %s",
                attempt,
                attempts,
                exc,
            )
            if attempt < attempts:
                time.sleep(retry_delay_seconds)

    logger.error("Giving up on login OTP email after %s attempts", attempts)
    return False
