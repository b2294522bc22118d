"""
Parsing of Myship (7-11 賣貨便) notification emails.

Myship sends two kinds of mail we act on:
- 訂單成立通知: a buyer placed an order on a listing ("store")
- 買家已完成取件: the buyer picked the parcel up at the store

Templates arrive as rich HTML or plain text and change without notice,
so every field is extracted by small independent matchers tried in order.
A field that cannot be found is left as None; the dispatcher decides
whether the email is still usable.
"""

import logging
import re
from typing import Callable, List, Optional

from .models import EmailType, ParsedEmail

logger = logging.getLogger(__name__)

# Checked in order; an email carrying both kinds of marker is an order confirmation
ORDER_CONFIRMED_MARKERS = ('有新的訂單成立', '訂單成立')
PICKUP_COMPLETED_MARKERS = ('買家已完成取件', '完成取件', '買家完成取貨', '完成取貨')

ORDER_NO_PATTERN = re.compile(r'CM\d{10,}')

# 賣場名稱[：]</td><td ...><a ...>260206-3869_亮菁菁</a></td>
STORE_NAME_HTML_PATTERN = re.compile(
    r'賣場名稱[：:]?\s*(?:</t[dh]>\s*<t[dh][^>]*>\s*)?(?:<[^>]*>)*\s*([^<\n]+)',
    re.IGNORECASE
)
# 賣場名稱：260206-3869_亮菁菁
STORE_NAME_TEXT_PATTERN = re.compile(r'賣場名稱[：:][ \t　]*(.+)')

# Buyer nickname Myship appends to the listing label, e.g. "（huiiiiii）"
TRAILING_NICKNAME_PATTERN = re.compile(r'[（(][^）)]*[）)]$')


def select_content(text_body: str, html_body: str) -> str:
    """HTML body if present, else plain text, else empty string."""
    return html_body or text_body or ''


def extract_order_no(content: str) -> Optional[str]:
    """Return the first CM order number in content, or None."""
    match = ORDER_NO_PATTERN.search(content)
    return match.group(0) if match else None


def detect_email_type(content: str) -> EmailType:
    if any(marker in content for marker in ORDER_CONFIRMED_MARKERS):
        return EmailType.ORDER_CONFIRMED
    if any(marker in content for marker in PICKUP_COMPLETED_MARKERS):
        return EmailType.PICKUP_COMPLETED
    return EmailType.UNKNOWN


def _match_store_name(pattern: re.Pattern, content: str) -> Optional[str]:
    match = pattern.search(content)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def match_store_name_html(content: str) -> Optional[str]:
    """Store name from a table/anchor HTML rendition."""
    return _match_store_name(STORE_NAME_HTML_PATTERN, content)


def match_store_name_text(content: str) -> Optional[str]:
    """Store name from a "賣場名稱：..." plain text line."""
    return _match_store_name(STORE_NAME_TEXT_PATTERN, content)


STORE_NAME_MATCHERS: List[Callable[[str], Optional[str]]] = [
    match_store_name_html,
    match_store_name_text,
]


def strip_buyer_nickname(store_name: str) -> str:
    """
    Remove a trailing parenthesized nickname.

    "260209-8117_Han. hui（huiiiiii）" -> "260209-8117_Han. hui"
    """
    return TRAILING_NICKNAME_PATTERN.sub('', store_name).strip()


def extract_store_name(content: str) -> Optional[str]:
    """
    Run the store name matchers in order; the first hit wins.

    Returns:
        The cleaned store name, or None if no matcher found one
    """
    for matcher in STORE_NAME_MATCHERS:
        store_name = matcher(content)
        if store_name is None:
            continue
        cleaned = strip_buyer_nickname(store_name)
        if cleaned:
            return cleaned
    return None


def parse_myship_email(
    text_body: str,
    html_body: str,
    recipient_email: str,
    subject: str = ''
) -> ParsedEmail:
    """
    Classify a Myship email and extract its order number and store name.

    Args:
        text_body: Decoded plain text body (may be empty)
        html_body: Decoded HTML body (may be empty)
        recipient_email: Address the email was delivered to
        subject: Subject line, carried along for logging

    Returns:
        ParsedEmail: Never raises for any string input
    """
    content = select_content(text_body, html_body)

    parsed = ParsedEmail(
        type=detect_email_type(content),
        order_no=extract_order_no(content),
        store_name=extract_store_name(content),
        recipient_email=recipient_email,
        subject=subject,
    )

    logger.info(
        f"[parsed] type={parsed.type.value}, orderNo={parsed.order_no}, "
        f"storeName={parsed.store_name}"
    )
    return parsed
