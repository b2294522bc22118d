import base64
import json
import logging
from typing import Dict, Any, Optional

from config import ConfigurationError, RpcConfig
from integrations.supabase_rpc import (
    SupabaseRpcClient,
    ORDER_CONFIRMED_RPC,
    PICKUP_COMPLETED_RPC,
)

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

LIVENESS_TEXT = 'myship-email processor OK'

_rpc_client: Optional[SupabaseRpcClient] = None


def _get_rpc_client() -> SupabaseRpcClient:
    global _rpc_client
    if _rpc_client is None:
        _rpc_client = SupabaseRpcClient(RpcConfig.from_env())
    return _rpc_client


def _json_response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body, ensure_ascii=False)
    }


def _request_method(event: Dict[str, Any]) -> str:
    """HTTP method from an API Gateway (v1) or Function URL (v2) event."""
    method = event.get('httpMethod')
    if not method:
        method = event.get('requestContext', {}).get('http', {}).get('method', '')
    return method.upper()


def _request_body(event: Dict[str, Any]) -> str:
    body = event.get('body') or ''
    if event.get('isBase64Encoded'):
        body = base64.b64decode(body).decode('utf-8')
    return body


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP test endpoint for the reconciliation RPCs.

    POST / with JSON body:
    {
        "type": "order_confirmed" | "pickup_completed",
        "store_name": "260206-3869_亮菁菁",   (order_confirmed only)
        "order_no": "CM2602101607192",
        "email": "shop@tenant.example"      (optional)
    }

    Skips MIME decoding and classification and returns the RPC result as is.
    Any other method returns a plain-text liveness string.
    """
    method = _request_method(event)

    if method != 'POST':
        return {
            'statusCode': 200,
            'headers': {'Content-Type': 'text/plain; charset=utf-8'},
            'body': LIVENESS_TEXT
        }

    try:
        raw_body = _request_body(event)
        body = json.loads(raw_body)
    except ValueError:
        # binascii.Error and UnicodeDecodeError are ValueErrors too
        return _json_response(400, {'error': 'Invalid JSON body'})

    if not isinstance(body, dict):
        return _json_response(400, {'error': 'Invalid request'})

    request_type = body.get('type')
    store_name = body.get('store_name')
    order_no = body.get('order_no')
    recipient_email = body.get('email') or None

    if request_type == 'order_confirmed' and store_name and order_no:
        function_name = ORDER_CONFIRMED_RPC
        params = {
            'p_store_name': store_name,
            'p_myship_order_no': order_no,
            'p_recipient_email': recipient_email,
        }
    elif request_type == 'pickup_completed' and order_no:
        function_name = PICKUP_COMPLETED_RPC
        params = {
            'p_myship_order_no': order_no,
            'p_recipient_email': recipient_email,
        }
    else:
        logger.info(f"Rejected test request: type={request_type}")
        return _json_response(400, {'error': 'Invalid request'})

    try:
        rpc_client = _get_rpc_client()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return _json_response(500, {'error': 'Internal server error', 'message': str(e)})

    logger.info(f"[test] {function_name} params={json.dumps(params, ensure_ascii=False)}")
    result = rpc_client.call(function_name, params)

    return _json_response(200, result)
