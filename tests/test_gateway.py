import hashlib
import hmac
from unittest import mock

import pytest
import requests

from apps.bookings.exceptions import GatewayUnavailable
from apps.payments.gateway import TelebirrGateway, get_gateway, normalize_result, sign_params


@pytest.fixture
def telebirr():
    return TelebirrGateway(
        api_url='https://telebirr.test/v1/', api_key='key', api_secret='secret',
        short_code='500100', timeout=7,
    )


def _response(payload, status=200):
    response = mock.Mock(status_code=status)
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_signature_covers_sorted_params():
    expected = hmac.new(b'secret', b'amount=600.00&phone=+251911000001', hashlib.sha256).hexdigest()
    assert sign_params({'phone': '+251911000001', 'amount': '600.00'}, 'secret') == expected


@pytest.mark.parametrize('raw, result', [
    ('SUCCESS', 'success'), ('completed', 'success'),
    ('Failed', 'failed'), ('expired', 'failed'),
    ('processing', 'pending'), (None, 'pending'),
])
def test_normalize_result(raw, result):
    assert normalize_result(raw) == result


def test_initiate_posts_signed_request(telebirr):
    with mock.patch('apps.payments.gateway.requests.post', return_value=_response({'success': True})) as post:
        data = telebirr.initiate('600.00', '+251911000001', 'DMP-1', 'Massage')

    url = post.call_args[0][0]
    body = post.call_args[1]['json']
    assert url == 'https://telebirr.test/v1/payment/initiate'
    assert post.call_args[1]['timeout'] == 7
    assert body['transactionId'] == 'DMP-1'
    signed = {k: v for k, v in body.items() if k != 'signature'}
    assert body['signature'] == sign_params(signed, 'secret')
    assert data['reference'] == 'DMP-1'


def test_initiate_rejected_by_gateway(telebirr):
    rejected = _response({'success': False, 'message': 'Insufficient balance'})
    with mock.patch('apps.payments.gateway.requests.post', return_value=rejected):
        with pytest.raises(GatewayUnavailable, match='Insufficient balance'):
            telebirr.initiate('600.00', '+251911000001', 'DMP-1', 'Massage')


@pytest.mark.parametrize('error', [requests.exceptions.Timeout, requests.exceptions.ConnectionError])
def test_transport_errors_become_gateway_unavailable(telebirr, error):
    with mock.patch('apps.payments.gateway.requests.post', side_effect=error):
        with pytest.raises(GatewayUnavailable):
            telebirr.verify('DMP-1')


def test_non_json_body(telebirr):
    response = _response(None)
    response.json.side_effect = ValueError('no json')
    with mock.patch('apps.payments.gateway.requests.post', return_value=response):
        with pytest.raises(GatewayUnavailable):
            telebirr.verify('DMP-1')


def test_verify_normalises_status(telebirr):
    with mock.patch('apps.payments.gateway.requests.post', return_value=_response({'status': 'COMPLETED'})):
        assert telebirr.verify('DMP-1')['status'] == 'success'


def test_webhook_signature(telebirr):
    payload = {'transactionId': 'DMP-1', 'status': 'SUCCESS', 'amount': '600.00'}
    payload['signature'] = sign_params(payload, 'secret')

    assert telebirr.parse_webhook(payload, payload['signature']) == ('DMP-1', 'success')
    assert not telebirr.verify_webhook_signature(payload, 'forged')
    with pytest.raises(ValueError):
        telebirr.parse_webhook(payload, '')


def test_get_gateway_reads_settings(settings):
    settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS = 3
    gateway = get_gateway()
    assert gateway.api_url == 'https://telebirr.test/v1'
    assert gateway.short_code == '500100'
    assert gateway.timeout == 3
