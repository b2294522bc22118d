"""
Email decoding utilities for Lambda handlers.

Turns a raw MIME payload (as stored in S3 by SES) into plain-text and HTML
bodies for the Myship parser.
"""

import logging
from email import policy
from email.parser import BytesParser
from email.message import EmailMessage
from typing import Dict

logger = logging.getLogger(__name__)


def _decode_part(part: EmailMessage, label: str) -> str:
    """
    Decode a single text part, falling back to a lenient UTF-8 decode.

    Myship mail is usually UTF-8 but occasionally declares a charset
    Python does not know (e.g. "big5-hkscs" variants).
    """
    try:
        # get_content() handles quoted-printable, base64, etc automatically
        return part.get_content()
    except Exception as e:
        logger.warning(f"Failed to decode {label} body with get_content(): {e}")
        payload = part.get_payload(decode=True)
        if payload:
            return payload.decode('utf-8', errors='ignore')
        return ''


def extract_email_body(email_content: bytes) -> Dict[str, str]:
    """
    Parse raw email (MIME format) and extract the text and HTML bodies.

    Attachments are ignored. Either body is an empty string when the
    message has no part of that type.

    Args:
        email_content: Raw email bytes from S3

    Returns:
        Dictionary with text_body and html_body

    Raises:
        ValueError: If email_content is not bytes

    Example:
        >>> email_bytes = b"From: sender@example.com\\r\\n\\r\\nHello World"
        >>> result = extract_email_body(email_bytes)
        >>> print(result['text_body'])
        "Hello World"
    """
    if not isinstance(email_content, (bytes, bytearray)):
        raise ValueError(
            f"Raw email must be bytes, got {type(email_content).__name__}"
        )

    msg = BytesParser(policy=policy.default).parsebytes(email_content)

    result = {
        'text_body': '',
        'html_body': '',
    }

    if msg.is_multipart():
        for part in msg.walk():
            if part.is_multipart():
                continue

            content_type = part.get_content_type()
            content_disposition = str(part.get("Content-Disposition", ""))

            if "attachment" in content_disposition:
                logger.info(f"Skipping attachment part: {part.get_filename()}")
                continue

            if content_type == "text/plain" and not result['text_body']:
                result['text_body'] = _decode_part(part, 'text')
            elif content_type == "text/html" and not result['html_body']:
                result['html_body'] = _decode_part(part, 'HTML')
    else:
        # Non-multipart email (single part)
        content_type = msg.get_content_type()
        if content_type == "text/plain":
            result['text_body'] = _decode_part(msg, 'text')
        elif content_type == "text/html":
            result['html_body'] = _decode_part(msg, 'HTML')
        else:
            logger.warning(
                f"Unknown content type for non-multipart email: {content_type}. "
                f"Email body will be empty."
            )

    return result
