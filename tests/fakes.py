from apps.bookings.exceptions import GatewayUnavailable


class FakeGateway:
    """In-memory stand-in for TelebirrGateway."""

    def __init__(self, status='pending', fail=False):
        self.status = status
        self.fail = fail
        self.initiated = []
        self.verified = []

    def initiate(self, amount, payer_phone, reference, description):
        self.initiated.append((amount, payer_phone, reference, description))
        if self.fail:
            raise GatewayUnavailable('Payment gateway timed out.')
        return {'reference': reference, 'checkoutUrl': f'https://pay.telebirr.test/{reference}'}

    def verify(self, reference):
        self.verified.append(reference)
        if self.fail:
            raise GatewayUnavailable('Payment gateway timed out.')
        return {'transactionId': reference, 'status': self.status}
