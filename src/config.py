"""
Environment configuration for the Myship email Lambda functions.

Values are read from the Lambda environment (set in the SAM template).
RPC credentials are wrapped in RpcConfig and handed to the RPC client
explicitly so tests can point it at a fake endpoint.
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_MYSHIP_SENDER = 'no-reply@sp88.com'


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class RpcConfig:
    """
    Connection settings for the Supabase RPC endpoint.

    Attributes:
        base_url: Supabase project URL (no trailing slash)
        service_key: Service-role key, sent as both apikey and bearer token
    """
    base_url: str
    service_key: str

    @classmethod
    def from_env(cls) -> 'RpcConfig':
        """
        Build RpcConfig from SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.

        Raises:
            ConfigurationError: If either variable is missing
        """
        base_url = os.environ.get('SUPABASE_URL', '')
        service_key = os.environ.get('SUPABASE_SERVICE_ROLE_KEY', '')

        if not base_url:
            raise ConfigurationError(
                "SUPABASE_URL environment variable is required but not set."
            )
        if not service_key:
            raise ConfigurationError(
                "SUPABASE_SERVICE_ROLE_KEY environment variable is required but not set."
            )

        return cls(base_url=base_url.rstrip('/'), service_key=service_key)


def myship_sender() -> str:
    """The only sender address whose mail is processed."""
    return os.environ.get('MYSHIP_SENDER', DEFAULT_MYSHIP_SENDER)


def forward_email() -> Optional[str]:
    """Fallback mailbox for non-Myship mail, or None when forwarding is off."""
    return os.environ.get('FORWARD_EMAIL') or None


def forward_from() -> Optional[str]:
    """SES-verified From address for forwarded mail, or None."""
    return os.environ.get('FORWARD_FROM') or None


def environment() -> str:
    """Deployment label used in log lines."""
    return os.environ.get('ENVIRONMENT', 'dev')
