import json
import time
from unittest.mock import MagicMock, patch

import pytest
import stripe

from services.exceptions import ConfigurationError, DependencyError, WebhookSignatureError
from services.payment_gateway import StripePaymentGateway
from tests.helpers import WEBHOOK_SECRET, sign_payload


@pytest.fixture
def gateway():
    return StripePaymentGateway('sk_test_dummy', webhook_secret=WEBHOOK_SECRET,
                                frontend_url='https://play.example.com/', expiry_minutes=30)


def test_requires_api_key():
    with pytest.raises(ConfigurationError, match="STRIPE_SECRET_KEY"):
        StripePaymentGateway(None)


def test_create_session(gateway):
    fake = MagicMock(id='cs_test_abc', url='https://checkout.stripe.test/cs_test_abc')
    before = int(time.time())

    with patch('stripe.checkout.Session.create', return_value=fake) as create:
        session = gateway.create_session(100000, 'inr', 'Direct Venue Booking - Cricket',
                                         {'bookingId': 'b-1', 'slotId': 7, 'gameId': None})

    assert session.session_id == 'cs_test_abc'
    assert session.redirect_url == 'https://checkout.stripe.test/cs_test_abc'

    kwargs = create.call_args.kwargs
    assert kwargs['metadata'] == {'bookingId': 'b-1', 'slotId': '7'}
    assert kwargs['mode'] == 'payment'
    assert kwargs['cancel_url'] == 'https://play.example.com/payment-cancel'
    assert before + 30 * 60 <= kwargs['expires_at'] <= int(time.time()) + 30 * 60


def test_create_session_wraps_stripe_errors(gateway):
    with patch('stripe.checkout.Session.create', side_effect=stripe.AuthenticationError("bad key")):
        with pytest.raises(DependencyError):
            gateway.create_session(100000, 'inr', 'x', {})


def test_verify_and_parse_event(gateway):
    payload = json.dumps({'id': 'evt_1', 'type': 'checkout.session.completed',
                          'data': {'object': {'id': 'cs_1'}}})

    event = gateway.verify_and_parse_event(payload.encode('utf-8'), sign_payload(payload))

    assert event['type'] == 'checkout.session.completed'
    assert event['data']['object']['id'] == 'cs_1'


def test_tampered_payload(gateway):
    payload = json.dumps({'id': 'evt_1', 'type': 'checkout.session.completed'})
    signature = sign_payload(payload)

    with pytest.raises(WebhookSignatureError):
        gateway.verify_and_parse_event(payload.replace('evt_1', 'evt_2'), signature)


def test_missing_signature(gateway):
    with pytest.raises(WebhookSignatureError):
        gateway.verify_and_parse_event('{}', None)


def test_missing_webhook_secret():
    gateway = StripePaymentGateway('sk_test_dummy')
    with pytest.raises(ConfigurationError):
        gateway.verify_and_parse_event('{}', 't=1,v1=abc')
