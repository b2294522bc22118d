"""
Data models for Myship email processing.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Dict, Any


class EmailType(str, Enum):
    """Classification of a Myship notification email."""
    ORDER_CONFIRMED = 'order_confirmed'
    PICKUP_COMPLETED = 'pickup_completed'
    UNKNOWN = 'unknown'


class DispatchOutcome(str, Enum):
    """Terminal outcome of reconciling one parsed email."""
    RPC_SUCCEEDED = 'rpc_succeeded'
    RPC_FAILED = 'rpc_failed'
    SKIPPED = 'skipped'


@dataclass
class DispatchResult:
    """
    Outcome of one dispatch plus the RPC result, when a call was made.

    rpc_result carries the procedure's echo fields (checkout_no,
    old_status, ...) unmodified.
    """
    outcome: DispatchOutcome
    rpc_result: Any = None


@dataclass
class EmailMetadata:
    """
    Structured email metadata extracted from SES notification.

    Attributes:
        message_id: Unique SQS message identifier
        from_address: Email sender address
        to_addresses: List of recipient addresses
        subject: Email subject line
        timestamp: ISO 8601 timestamp when email was received
        bucket_name: S3 bucket containing the raw email
        object_key: S3 object key for the raw email
    """
    message_id: str
    from_address: str
    to_addresses: List[str]
    subject: str
    timestamp: str
    bucket_name: str
    object_key: str

    @property
    def recipient(self) -> str:
        """Mailbox the message was delivered to, used to resolve the tenant."""
        return self.to_addresses[0] if self.to_addresses else ''


@dataclass
class EmailContent:
    """
    Decoded email bodies.

    Attributes:
        text_body: Plain text body (empty string if not present)
        html_body: HTML body (empty string if not present)
    """
    text_body: str
    html_body: str

    @property
    def has_content(self) -> bool:
        """Check if email has any body content."""
        return bool(self.text_body or self.html_body)


@dataclass(frozen=True)
class ParsedEmail:
    """
    Classification and extracted fields of one Myship email.

    order_no and store_name are independently optional whatever the type;
    the dispatcher checks what each type requires.

    Attributes:
        type: Email classification
        order_no: Myship order number ("CM" + digits), if found
        store_name: Listing label (embeds the tenant linking code), if found
        recipient_email: Receiving mailbox, verbatim
        subject: Subject line, used for logging only
    """
    type: EmailType
    order_no: Optional[str]
    store_name: Optional[str]
    recipient_email: str
    subject: str = ''

    def to_log_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'order_no': self.order_no,
            'store_name': self.store_name,
            'recipient_email': self.recipient_email,
            'subject': self.subject,
        }


@dataclass
class ProcessingResult:
    """
    Result of processing one SQS record.

    Errors are reported here instead of raised so the handler can always
    consume the message.

    Attributes:
        success: Whether processing completed without an error
        message_id: SQS message identifier
        outcome: What happened (see OUTCOME_* constants)
        metadata: Email metadata (if notification parsing succeeded)
        parsed: Parsed email (if classification ran)
        rpc_result: Result returned by the reconciliation RPC (if one was called)
        error_message: Error description (if processing failed)
    """
    OUTCOME_DISPATCHED = 'dispatched'
    OUTCOME_RPC_FAILED = 'rpc_failed'
    OUTCOME_SKIPPED = 'skipped'
    OUTCOME_IGNORED_SENDER = 'ignored_sender'
    OUTCOME_ERROR = 'error'

    success: bool
    message_id: str
    outcome: str
    metadata: Optional[EmailMetadata] = None
    parsed: Optional[ParsedEmail] = None
    rpc_result: Any = None
    error_message: Optional[str] = None

