"""
Reconciliation of parsed Myship emails against checkout state.

- order_confirmed: match the checkout by store name, record the CM order
  number, status url_sent -> ordered
- pickup_completed: match the checkout by CM order number,
  status ordered/shipped -> completed

Idempotence and ordering are the RPC functions' responsibility; this
module makes at most one call per email and never retries.
"""

import json
import logging
from typing import Any

from integrations.supabase_rpc import (
    SupabaseRpcClient,
    ORDER_CONFIRMED_RPC,
    PICKUP_COMPLETED_RPC,
)
from .models import DispatchOutcome, DispatchResult, EmailType, ParsedEmail

logger = logging.getLogger(__name__)


def _dump(parsed: ParsedEmail) -> str:
    return json.dumps(parsed.to_log_dict(), ensure_ascii=False)


class ReconciliationDispatcher:
    """Routes a ParsedEmail to the matching RPC function."""

    def __init__(self, rpc_client: SupabaseRpcClient):
        self.rpc_client = rpc_client

    def dispatch(self, parsed: ParsedEmail) -> DispatchResult:
        """
        Validate required fields for the email type and call its RPC.

        Missing fields and unknown types are logged and skipped; they are
        not errors. RPC failures are logged and reported, never raised; a
        result that is not a JSON object counts as a failure.
        """
        if parsed.type == EmailType.ORDER_CONFIRMED:
            return self._handle_order_confirmed(parsed)
        if parsed.type == EmailType.PICKUP_COMPLETED:
            return self._handle_pickup_completed(parsed)

        logger.info(f"[skip] Unknown myship email type, subject: {parsed.subject}")
        return DispatchResult(DispatchOutcome.SKIPPED)

    def _handle_order_confirmed(self, parsed: ParsedEmail) -> DispatchResult:
        if not parsed.store_name:
            logger.error(f"[order_confirmed] Missing store name: {_dump(parsed)}")
            return DispatchResult(DispatchOutcome.SKIPPED)
        if not parsed.order_no:
            logger.error(f"[order_confirmed] Missing CM order no: {_dump(parsed)}")
            return DispatchResult(DispatchOutcome.SKIPPED)

        logger.info(
            f"[order_confirmed] store={parsed.store_name}, orderNo={parsed.order_no}, "
            f"email={parsed.recipient_email}"
        )

        result = self.rpc_client.call(ORDER_CONFIRMED_RPC, {
            'p_store_name': parsed.store_name,
            'p_myship_order_no': parsed.order_no,
            'p_recipient_email': parsed.recipient_email,
        })

        if isinstance(result, dict) and result.get('success'):
            logger.info(
                f"[order_confirmed] OK: checkout={result.get('checkout_no')}, "
                f"orderNo={parsed.order_no}"
            )
            return DispatchResult(DispatchOutcome.RPC_SUCCEEDED, result)

        self._log_failure('order_confirmed', result, parsed)
        return DispatchResult(DispatchOutcome.RPC_FAILED, result)

    def _handle_pickup_completed(self, parsed: ParsedEmail) -> DispatchResult:
        if not parsed.order_no:
            logger.error(f"[pickup_completed] Missing CM order no: {_dump(parsed)}")
            return DispatchResult(DispatchOutcome.SKIPPED)

        logger.info(
            f"[pickup_completed] orderNo={parsed.order_no}, email={parsed.recipient_email}"
        )

        result = self.rpc_client.call(PICKUP_COMPLETED_RPC, {
            'p_myship_order_no': parsed.order_no,
            'p_recipient_email': parsed.recipient_email,
        })

        if isinstance(result, dict) and result.get('success'):
            logger.info(
                f"[pickup_completed] OK: checkout={result.get('checkout_no')}, "
                f"oldStatus={result.get('old_status')}"
            )
            return DispatchResult(DispatchOutcome.RPC_SUCCEEDED, result)

        self._log_failure('pickup_completed', result, parsed)
        return DispatchResult(DispatchOutcome.RPC_FAILED, result)

    def _log_failure(self, tag: str, result: Any, parsed: ParsedEmail) -> None:
        if isinstance(result, dict):
            error = result.get('error')
        else:
            error = f"unexpected RPC result: {result!r}"
        logger.error(f"[{tag}] FAIL: {error} {_dump(parsed)}")
