"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('SUPABASE_URL', 'https://test-project.supabase.co')
os.environ.setdefault('SUPABASE_SERVICE_ROLE_KEY', 'test-service-role-key')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('ENVIRONMENT', 'test')


MYSHIP_SENDER = 'no-reply@sp88.com'


def build_raw_email(html=None, text=None, sender=MYSHIP_SENDER,
                    to='shop@tenant.example', subject='Myship notification'):
    """Build a raw MIME message with optional text and HTML parts."""
    from email.message import EmailMessage

    msg = EmailMessage()
    msg['From'] = sender
    msg['To'] = to
    msg['Subject'] = subject
    if text is not None:
        msg.set_content(text)
        if html is not None:
            msg.add_alternative(html, subtype='html')
    elif html is not None:
        msg.set_content(html, subtype='html')
    else:
        msg.set_content('')
    return msg.as_bytes()


@pytest.fixture
def raw_email_factory():
    return build_raw_email


@pytest.fixture
def mock_context():
    """Mock Lambda context."""
    from unittest.mock import Mock

    context = Mock()
    context.request_id = "test-request-id"
    context.invoked_function_arn = "arn:aws:lambda:us-west-2:123456789012:function:test"
    context.function_name = "myship-email-test"
    return context
