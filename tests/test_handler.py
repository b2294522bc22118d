import base64
import json
import pytest
import os
from unittest.mock import patch, MagicMock

import requests

import handler
from config import ConfigurationError, RpcConfig
from integrations.supabase_rpc import SupabaseRpcClient


EVENTS_DIR = os.path.join(os.path.dirname(__file__), 'events')


@pytest.fixture
def rpc_client():
    client = MagicMock()
    client.call.return_value = {'success': True, 'checkout_no': 'CK-0001'}
    with patch('handler._get_rpc_client', return_value=client):
        yield client


def post_event(body):
    """API Gateway (v1) proxy event."""
    return {
        'httpMethod': 'POST',
        'path': '/',
        'body': body if isinstance(body, str) else json.dumps(body),
        'isBase64Encoded': False
    }


def test_order_confirmed_request(rpc_client, mock_context):
    response = handler.lambda_handler(post_event({
        'type': 'order_confirmed',
        'store_name': '260206-3869_亮菁菁',
        'order_no': 'CM2602101607192',
        'email': 'shop@tenant.example'
    }), mock_context)

    assert response['statusCode'] == 200
    assert json.loads(response['body']) == {'success': True, 'checkout_no': 'CK-0001'}
    rpc_client.call.assert_called_once_with('process_myship_order_email', {
        'p_store_name': '260206-3869_亮菁菁',
        'p_myship_order_no': 'CM2602101607192',
        'p_recipient_email': 'shop@tenant.example',
    })


def test_pickup_completed_without_email(rpc_client, mock_context):
    response = handler.lambda_handler(post_event({
        'type': 'pickup_completed',
        'order_no': 'CM2602101607192'
    }), mock_context)

    assert response['statusCode'] == 200
    rpc_client.call.assert_called_once_with('process_myship_completed_email', {
        'p_myship_order_no': 'CM2602101607192',
        'p_recipient_email': None,
    })


def test_rpc_failure_returned_verbatim(rpc_client, mock_context):
    rpc_client.call.return_value = {'success': False, 'error': 'RPC error: 500'}

    response = handler.lambda_handler(post_event({
        'type': 'pickup_completed',
        'order_no': 'CM2602101607192'
    }), mock_context)

    assert response['statusCode'] == 200
    assert json.loads(response['body']) == {'success': False, 'error': 'RPC error: 500'}


def test_non_json_rpc_response(mock_context):
    rpc_response = requests.Response()
    rpc_response.status_code = 200
    rpc_response._content = b'<html><body>Bad gateway</body></html>'
    session = MagicMock(spec=requests.Session)
    session.post.return_value = rpc_response
    client = SupabaseRpcClient(
        RpcConfig(base_url='https://fake.supabase.test', service_key='secret-key'),
        session=session
    )

    with patch('handler._get_rpc_client', return_value=client):
        response = handler.lambda_handler(post_event({
            'type': 'pickup_completed',
            'order_no': 'CM2602101607192'
        }), mock_context)

    assert response['statusCode'] == 200
    assert json.loads(response['body']) == {
        'success': False,
        'error': 'RPC error: invalid JSON response'
    }


def test_function_url_event(rpc_client, mock_context):
    with open(os.path.join(EVENTS_DIR, 'function-url-post.json'), encoding='utf-8') as f:
        event = json.load(f)

    response = handler.lambda_handler(event, mock_context)

    assert response['statusCode'] == 200
    rpc_client.call.assert_called_once_with('process_myship_completed_email', {
        'p_myship_order_no': 'CM2602101607192',
        'p_recipient_email': 'shop@tenant.example',
    })


def test_base64_encoded_body(rpc_client, mock_context):
    body = json.dumps({'type': 'pickup_completed', 'order_no': 'CM2602101607192'})
    event = post_event(base64.b64encode(body.encode('utf-8')).decode('ascii'))
    event['isBase64Encoded'] = True

    response = handler.lambda_handler(event, mock_context)

    assert response['statusCode'] == 200
    rpc_client.call.assert_called_once()


@pytest.mark.parametrize('body', [
    {'type': 'order_confirmed', 'order_no': 'CM2602101607192'},
    {'type': 'order_confirmed', 'store_name': '260206-3869_亮菁菁'},
    {'type': 'pickup_completed', 'store_name': '260206-3869_亮菁菁'},
    {'type': 'unknown', 'order_no': 'CM2602101607192'},
    {},
    ['order_confirmed'],
])
def test_invalid_request(rpc_client, mock_context, body):
    response = handler.lambda_handler(post_event(body), mock_context)

    assert response['statusCode'] == 400
    assert json.loads(response['body']) == {'error': 'Invalid request'}
    rpc_client.call.assert_not_called()


def test_invalid_json(rpc_client, mock_context):
    response = handler.lambda_handler(post_event('{not json'), mock_context)

    assert response['statusCode'] == 400
    assert json.loads(response['body']) == {'error': 'Invalid JSON body'}
    rpc_client.call.assert_not_called()


@pytest.mark.parametrize('encoded_body', [
    'abc',
    base64.b64encode(b'\xff\xfe{}').decode('ascii'),
])
def test_undecodable_base64_body(rpc_client, mock_context, encoded_body):
    event = post_event(encoded_body)
    event['isBase64Encoded'] = True

    response = handler.lambda_handler(event, mock_context)

    assert response['statusCode'] == 400
    assert json.loads(response['body']) == {'error': 'Invalid JSON body'}
    rpc_client.call.assert_not_called()


@pytest.mark.parametrize('event', [
    {'httpMethod': 'GET', 'path': '/'},
    {'requestContext': {'http': {'method': 'GET'}}},
    {'httpMethod': 'PUT', 'body': '{}'},
    {},
])
def test_liveness(rpc_client, mock_context, event):
    response = handler.lambda_handler(event, mock_context)

    assert response['statusCode'] == 200
    assert response['headers']['Content-Type'].startswith('text/plain')
    assert response['body'] == handler.LIVENESS_TEXT
    rpc_client.call.assert_not_called()


def test_missing_configuration(mock_context):
    with patch('handler._get_rpc_client', side_effect=ConfigurationError('SUPABASE_URL missing')):
        response = handler.lambda_handler(post_event({
            'type': 'pickup_completed',
            'order_no': 'CM2602101607192'
        }), mock_context)

    assert response['statusCode'] == 500
    assert json.loads(response['body'])['error'] == 'Internal server error'
