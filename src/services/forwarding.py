"""
Forwarding of non-Myship mail to a fallback mailbox via Amazon SES.

SES only sends from verified identities, so the forwarded copy is sent
from FORWARD_FROM (or the receiving address) with the original sender
kept in Reply-To.
"""

import logging
from email import policy
from email.parser import BytesParser

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

ses_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

ses_client = boto3.client('ses', config=ses_config)

# Headers SES rejects or that would break re-sending
_STRIPPED_HEADERS = (
    'Return-Path',
    'Sender',
    'Message-ID',
    'DKIM-Signature',
    'Reply-To',
)


def _rewrite_headers(raw_email: bytes, forward_to: str, source: str) -> bytes:
    """Re-address a raw message so SES will accept it for sending."""
    msg = BytesParser(policy=policy.SMTP).parsebytes(raw_email)
    original_from = msg.get('From', '')

    for header in _STRIPPED_HEADERS:
        del msg[header]
    del msg['From']
    del msg['To']

    msg['From'] = source
    msg['To'] = forward_to
    if original_from:
        msg['Reply-To'] = original_from

    return msg.as_bytes()


def forward_email(raw_email: bytes, forward_to: str, source: str) -> bool:
    """
    Forward a raw email through SES.

    Failures are logged and reported as False; forwarding is best effort
    and must never fail the invocation.

    Args:
        raw_email: Original MIME payload
        forward_to: Destination mailbox
        source: SES-verified sender address

    Returns:
        bool: True if SES accepted the message
    """
    try:
        payload = _rewrite_headers(raw_email, forward_to, source)
        response = ses_client.send_raw_email(
            Source=source,
            Destinations=[forward_to],
            RawMessage={'Data': payload}
        )
        logger.info(f"[forward] Sent to {forward_to}, ses_message_id={response.get('MessageId')}")
        return True
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        logger.warning(f"[forward] SES rejected forward to {forward_to}: {error_code} {e}")
        return False
    except Exception as e:
        logger.warning(f"[forward] Failed to forward to {forward_to}: {e}")
        return False
