"""
Supabase PostgREST RPC client.

Calls stored procedures at {SUPABASE_URL}/rest/v1/rpc/<name> with the
service-role key. This is a server-to-server channel: the same key is
sent as the apikey header and as the bearer token.

Usage:
    from config import RpcConfig
    from integrations.supabase_rpc import SupabaseRpcClient

    client = SupabaseRpcClient(RpcConfig.from_env())
    result = client.call('process_myship_completed_email', {
        'p_myship_order_no': 'CM2602101607192',
        'p_recipient_email': 'shop@tenant.example',
    })
    if result['success']:
        print(result.get('checkout_no'))
"""

import logging
from typing import Any, Dict, Optional

import requests

from config import RpcConfig

logger = logging.getLogger(__name__)

ORDER_CONFIRMED_RPC = 'process_myship_order_email'
PICKUP_COMPLETED_RPC = 'process_myship_completed_email'


class SupabaseRpcClient:
    """
    Thin authenticated caller for Supabase RPC functions.

    Never raises for transport problems: non-2xx responses and network
    errors come back as {"success": False, "error": "..."}, as does a 2xx
    body that is not JSON. No retries and no timeout beyond the transport
    default.
    """

    def __init__(self, config: RpcConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'apikey': self.config.service_key,
            'Authorization': f'Bearer {self.config.service_key}',
        }

    def rpc_url(self, function_name: str) -> str:
        return f"{self.config.base_url}/rest/v1/rpc/{function_name}"

    def call(self, function_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke one RPC function.

        Args:
            function_name: Stored procedure name
            params: JSON-serializable arguments (p_* names)

        Returns:
            The procedure's JSON result verbatim on 2xx, otherwise
            {"success": False, "error": "RPC error: ..."}
        """
        url = self.rpc_url(function_name)

        try:
            response = self.session.post(url, json=params, headers=self._headers)
        except requests.RequestException as e:
            logger.error(f"RPC {function_name} request failed: {e}")
            return {'success': False, 'error': f"RPC error: {e}"}

        if not response.ok:
            logger.error(
                f"RPC {function_name} failed: status={response.status_code}, "
                f"body={response.text}"
            )
            return {'success': False, 'error': f"RPC error: {response.status_code}"}

        try:
            return response.json()
        except ValueError:
            logger.error(
                f"RPC {function_name} returned invalid JSON: status={response.status_code}, "
                f"body={response.text!r}"
            )
            return {'success': False, 'error': 'RPC error: invalid JSON response'}
