"""
Turn a raw RFC 822 message into a queueable InboundEmail.

Missing or unreadable parts fall back to defaults: subject "(No subject)",
empty text and html bodies.
"""

import email
import email.policy
from email.message import EmailMessage
from typing import Optional

from loguru import logger

from mail_queue.models import InboundEmail

NO_SUBJECT = "(No subject)"


def parse_mime_message(raw_mime: bytes) -> EmailMessage:
    """Parse raw MIME bytes.

    Raises:
        ValueError: If MIME parsing fails
    """
    try:
        return email.message_from_bytes(raw_mime, policy=email.policy.default)
    except Exception as e:
        logger.error(f"Failed to parse MIME message: {e}")
        raise ValueError(f"Invalid MIME message: {e}")


def _body(msg: EmailMessage, subtype: str) -> str:
    try:
        part = msg.get_body(preferencelist=(subtype,))
        if part is None:
            return ""
        return part.get_content()
    except Exception as e:
        logger.debug(f"Could not read text/{subtype} body: {e}")
        return ""


def extract_email(
    raw_mime: bytes,
    *,
    envelope_from: Optional[str] = None,
    envelope_to: Optional[str] = None,
) -> InboundEmail:
    """Build an InboundEmail from raw MIME.

    Envelope addresses, when given, win over the From/To headers.
    """
    msg = parse_mime_message(raw_mime)

    sender = envelope_from or str(msg.get("From", ""))
    to = envelope_to or str(msg.get("To", ""))
    if not sender or not to:
        raise ValueError("message has no sender or recipient")

    return InboundEmail(
        sender=sender,
        to=to,
        subject=str(msg.get("Subject", "")) or NO_SUBJECT,
        text=_body(msg, "plain"),
        html=_body(msg, "html"),
    )
