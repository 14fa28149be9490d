import asyncio
import logging
import smtplib
from email.message import EmailMessage

from codex.config import EMAIL_PASS, EMAIL_USER, OTP_TTL_SECONDS, SMTP_HOST, SMTP_PORT, SMTP_TIMEOUT_SECONDS
from codex.errors import MailDeliveryError

logger = logging.getLogger(__name__)


def _build_otp_message(to_address: str, otp: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "Password Reset OTP"
    message["From"] = EMAIL_USER
    message["To"] = to_address
    message.set_content(f"Your OTP for password reset is: {otp}")
    message.add_alternative(
        f"<p>Your OTP for password reset is: <strong>{otp}</strong></p>"
        f"<p>This OTP will expire in {OTP_TTL_SECONDS // 60} minutes.</p>",
        subtype="html",
    )
    return message


def _send(message: EmailMessage) -> None:
    with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
        smtp.login(EMAIL_USER, EMAIL_PASS)
        smtp.send_message(message)


async def send_otp_email(to_address: str, otp: str) -> None:
    try:
        await asyncio.to_thread(_send, _build_otp_message(to_address, otp))
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("OTP mail delivery failed")
        raise MailDeliveryError(str(e)) from e
