"""
Telebirr gateway client.

Every request carries an HMAC-SHA256 signature over its parameters, sorted
by key and joined as `key=value&...`. Webhook payloads are signed the same way.

Any transport error, timeout, non-2xx response or malformed body surfaces as
GatewayUnavailable; callers decide what to do with the pending attempt.
"""
import hashlib
import hmac
import logging
import time

import requests
from django.conf import settings

from apps.bookings.exceptions import GatewayUnavailable

logger = logging.getLogger(__name__)

RESULT_SUCCESS = 'success'
RESULT_FAILED = 'failed'
RESULT_PENDING = 'pending'

_SUCCESS_STATES = {'success', 'successful', 'completed', 'paid'}
_FAILED_STATES = {'failed', 'failure', 'cancelled', 'canceled', 'expired', 'declined'}


def normalize_result(raw) -> str:
    """Map a gateway status string onto success / failed / pending."""
    value = str(raw or '').strip().lower()
    if value in _SUCCESS_STATES:
        return RESULT_SUCCESS
    if value in _FAILED_STATES:
        return RESULT_FAILED
    return RESULT_PENDING


def sign_params(params: dict, secret: str) -> str:
    message = '&'.join(f'{key}={params[key]}' for key in sorted(params))
    return hmac.new(
        key=secret.encode(), msg=message.encode(), digestmod=hashlib.sha256,
    ).hexdigest()


class TelebirrGateway:

    def __init__(self, api_url, api_key, api_secret, short_code, notify_url='', timeout=10):
        self.api_url = api_url.rstrip('/')
        self.api_key = api_key
        self.api_secret = api_secret
        self.short_code = short_code
        self.notify_url = notify_url
        self.timeout = timeout

    def _post(self, path: str, params: dict) -> dict:
        params = dict(params, apiKey=self.api_key, timestamp=str(int(time.time() * 1000)))
        params['signature'] = sign_params(params, self.api_secret)
        url = f'{self.api_url}/{path.lstrip("/")}'

        try:
            response = requests.post(url, json=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            logger.warning('Telebirr %s timed out after %ss', path, self.timeout)
            raise GatewayUnavailable('Payment gateway timed out.')
        except requests.exceptions.RequestException as exc:
            logger.warning('Telebirr %s failed: %s', path, exc)
            raise GatewayUnavailable('Payment gateway is unavailable.')
        except ValueError:
            logger.warning('Telebirr %s returned a non-JSON body', path)
            raise GatewayUnavailable('Payment gateway returned an invalid response.')

        if not isinstance(data, dict):
            raise GatewayUnavailable('Payment gateway returned an invalid response.')
        return data

    def initiate(self, amount, payer_phone, reference, description) -> dict:
        params = {
            'shortCode':     self.short_code,
            'amount':        str(amount),
            'phone':         payer_phone,
            'transactionId': reference,
            'description':   description,
        }
        if self.notify_url:
            params['notifyUrl'] = self.notify_url

        data = self._post('payment/initiate', params)
        if data.get('success') is False:
            logger.warning('Telebirr rejected initiation of %s: %s', reference, data.get('message'))
            raise GatewayUnavailable(data.get('message') or 'Payment initiation was rejected.')

        data.setdefault('reference', data.get('transactionId') or reference)
        return data

    def verify(self, reference) -> dict:
        data = self._post('payment/verify', {'transactionId': reference})
        data['status'] = normalize_result(data.get('status'))
        return data

    def verify_webhook_signature(self, payload: dict, signature: str) -> bool:
        """Check a callback payload signed with the shared secret."""
        if not signature:
            return False
        fields = {key: value for key, value in payload.items() if key != 'signature'}
        computed = sign_params(fields, self.api_secret)
        return hmac.compare_digest(computed, signature)

    def parse_webhook(self, payload: dict, signature: str):
        """
        Returns (reference, result) for a signed callback payload.
        Raises ValueError when the signature does not match.
        """
        if not self.verify_webhook_signature(payload, signature):
            raise ValueError('Invalid webhook signature')
        return payload.get('transactionId', ''), normalize_result(payload.get('status'))


def get_gateway() -> TelebirrGateway:
    return TelebirrGateway(
        api_url=settings.TELEBIRR_API_URL,
        api_key=settings.TELEBIRR_API_KEY,
        api_secret=settings.TELEBIRR_API_SECRET,
        short_code=settings.TELEBIRR_SHORT_CODE,
        notify_url=settings.TELEBIRR_NOTIFY_URL,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
    )
