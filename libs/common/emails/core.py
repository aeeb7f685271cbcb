"""
SMTP email sending.
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
    reply_to: Optional[str],
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
    if reply_to:
        msg["Reply-To"] = reply_to
    return msg


def _deliver(sender_email: str, to_email: str, message: str) -> None:
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
    reply_to: Optional[str] = None,
) -> bool:
    """
    Send an email.

    Returns True when the SMTP server accepted the message. Delivery problems
    are logged and reported as False; callers treat email as best effort.
    """
    settings = get_settings()

    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.info(
            "SMTP not configured - email not sent",
            extra={"extra_fields": {"to": to_email, "subject": subject}},
        )
        return False

    sender_email = settings.DEFAULT_FROM_EMAIL
    msg = _build_message(
        to_email,
        subject,
        body,
        html_body,
        f"{settings.DEFAULT_FROM_NAME} <{sender_email}>",
        reply_to,
    )

    try:
        await asyncio.to_thread(_deliver, sender_email, to_email, msg.as_string())
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {e}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
        return False

    logger.info(f"Email sent to {to_email}: {subject}")
    return True
