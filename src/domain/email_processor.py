"""
Myship email processing pipeline - core business logic.

This module handles the end-to-end processing of SES email notifications:
1. Parse SES notification from SQS record
2. Drop (or forward) mail not sent by Myship
3. Fetch the raw email from S3 and decode its bodies
4. Classify the email and extract order number / store name
5. Dispatch one reconciliation RPC
6. Return result (success or failure)

All errors are caught and returned as ProcessingResult with success=False.
No exceptions propagate out of the public methods.
"""

import json
import logging
from email.utils import parseaddr
from typing import Dict, Any, List, Optional

import config
from config import RpcConfig
from integrations.supabase_rpc import SupabaseRpcClient
from services import email as email_service
from services import s3 as s3_service
from services import forwarding as forwarding_service
from .email_parser import parse_myship_email
from .models import DispatchOutcome, EmailContent, EmailMetadata, ParsedEmail, ProcessingResult
from .reconciliation import ReconciliationDispatcher

logger = logging.getLogger(__name__)

_OUTCOMES = {
    DispatchOutcome.RPC_SUCCEEDED: ProcessingResult.OUTCOME_DISPATCHED,
    DispatchOutcome.RPC_FAILED: ProcessingResult.OUTCOME_RPC_FAILED,
    DispatchOutcome.SKIPPED: ProcessingResult.OUTCOME_SKIPPED,
}


def _address_list(value: Any) -> List[str]:
    """Normalize a header/envelope field (list or string) to bare addresses."""
    if isinstance(value, str):
        value = [value] if value else []
    elif not isinstance(value, list):
        return []
    return [parseaddr(v)[1] or v for v in value if v]


class EmailProcessor:
    """
    Handles end-to-end processing of one Myship notification email.

    Args:
        dispatcher: Reconciliation dispatcher; built from the environment
            (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY) when omitted
        sender: Allow-listed sender address; MYSHIP_SENDER when omitted
    """

    def __init__(
        self,
        dispatcher: Optional[ReconciliationDispatcher] = None,
        sender: Optional[str] = None
    ):
        if dispatcher is None:
            dispatcher = ReconciliationDispatcher(SupabaseRpcClient(RpcConfig.from_env()))
        self.dispatcher = dispatcher
        self.sender = sender or config.myship_sender()

    def process_ses_record(self, record: Dict[str, Any]) -> ProcessingResult:
        """
        Process a single SQS record containing SES notification.

        Args:
            record: SQS record dict containing SES notification

        Returns:
            ProcessingResult with success=True or success=False (errors logged)
        """
        message_id = record.get('messageId', 'UNKNOWN')
        logger.info(f"Processing SQS message: {message_id}")

        metadata = None
        parsed = None
        try:
            metadata = self._parse_ses_notification(record)

            if metadata.from_address != self.sender:
                logger.info(
                    f"[skip] Non-myship email from: {metadata.from_address}, "
                    f"subject: {metadata.subject}"
                )
                self._forward_foreign_email(metadata)
                return ProcessingResult(
                    success=True,
                    message_id=message_id,
                    outcome=ProcessingResult.OUTCOME_IGNORED_SENDER,
                    metadata=metadata
                )

            logger.info(
                f"[received] to={metadata.recipient}, from={metadata.from_address}, "
                f"subject={metadata.subject}"
            )

            content = self._fetch_email(metadata)
            if not content.has_content:
                logger.warning(f"Email body is empty: {metadata.object_key}")

            parsed = parse_myship_email(
                content.text_body,
                content.html_body,
                metadata.recipient,
                metadata.subject
            )

            dispatch_result = self.dispatcher.dispatch(parsed)

            return ProcessingResult(
                success=True,
                message_id=message_id,
                outcome=_OUTCOMES[dispatch_result.outcome],
                metadata=metadata,
                parsed=parsed,
                rpc_result=dispatch_result.rpc_result
            )

        except Exception as e:
            logger.error(
                f"[error] Failed to process {message_id}: {e} "
                f"{self._error_context(metadata, parsed)}",
                exc_info=True
            )

            return ProcessingResult(
                success=False,
                message_id=message_id,
                outcome=ProcessingResult.OUTCOME_ERROR,
                metadata=metadata,
                parsed=parsed,
                error_message=str(e)
            )

    def _parse_ses_notification(self, record: Dict[str, Any]) -> EmailMetadata:
        """
        Parse SQS record and extract SES notification metadata.

        Handles both direct SES->SQS and SNS-wrapped notifications. Sender and
        recipients come from the SMTP envelope (mail.source / mail.destination)
        and fall back to the From/To headers.

        Args:
            record: SQS record dict

        Returns:
            EmailMetadata: Structured email metadata

        Raises:
            ValueError: If notification structure is invalid
            json.JSONDecodeError: If JSON parsing fails
        """
        message_id = record.get('messageId', 'UNKNOWN')

        sqs_body = json.loads(record['body'])

        # Optional setup: SES -> SNS -> SQS
        if sqs_body.get('Type') == 'Notification' and 'Message' in sqs_body:
            logger.info("Unwrapping SNS message (SES -> SNS -> SQS)")
            ses_notification = json.loads(sqs_body['Message'])
        else:
            ses_notification = sqs_body

        if 'mail' not in ses_notification or 'receipt' not in ses_notification:
            raise ValueError("SES notification missing 'mail' or 'receipt' fields")

        mail = ses_notification['mail']
        receipt = ses_notification['receipt']
        common_headers = mail.get('commonHeaders', {})

        senders = _address_list(mail.get('source')) or _address_list(common_headers.get('from'))
        from_address = senders[0] if senders else 'Unknown'

        to_addresses = _address_list(mail.get('destination')) or _address_list(common_headers.get('to'))

        action = receipt.get('action', {})
        bucket_name = action.get('bucketName')
        object_key = action.get('objectKey')

        if not bucket_name or not object_key:
            raise ValueError("Missing S3 location in SES notification")

        return EmailMetadata(
            message_id=message_id,
            from_address=from_address,
            to_addresses=to_addresses,
            subject=common_headers.get('subject', ''),
            timestamp=mail.get('timestamp', ''),
            bucket_name=bucket_name,
            object_key=object_key
        )

    def _fetch_email(self, metadata: EmailMetadata) -> EmailContent:
        """
        Fetch email from S3 and decode its bodies.

        Raises:
            ValueError: If S3 fetch fails or email parsing fails
        """
        logger.info(f"Fetching email from: s3://{metadata.bucket_name}/{metadata.object_key}")

        raw_email = s3_service.fetch_email_from_s3(
            metadata.bucket_name,
            metadata.object_key
        )
        logger.info(f"Fetched {len(raw_email):,} bytes from S3")

        parsed = email_service.extract_email_body(raw_email)

        return EmailContent(
            text_body=parsed.get('text_body', ''),
            html_body=parsed.get('html_body', '')
        )

    def _forward_foreign_email(self, metadata: EmailMetadata) -> None:
        """
        Forward non-Myship mail to FORWARD_EMAIL, if configured.

        Best effort: failures are logged and otherwise ignored.
        """
        forward_to = config.forward_email()
        if not forward_to:
            return

        source = config.forward_from() or metadata.recipient
        if not source:
            logger.warning("[forward] No FORWARD_FROM or recipient address, skipping")
            return

        try:
            raw_email = s3_service.fetch_email_from_s3(
                metadata.bucket_name,
                metadata.object_key
            )
        except Exception as e:
            logger.warning(f"[forward] Could not load email for forwarding: {e}")
            return

        forwarding_service.forward_email(raw_email, forward_to, source)

    def _error_context(
        self,
        metadata: Optional[EmailMetadata],
        parsed: Optional[ParsedEmail]
    ) -> str:
        context = {}
        if metadata is not None:
            context['from'] = metadata.from_address
            context['to'] = metadata.recipient
            context['subject'] = metadata.subject
        if parsed is not None:
            context['parsed'] = parsed.to_log_dict()
        return json.dumps(context, ensure_ascii=False)
