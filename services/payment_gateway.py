# services/payment_gateway.py

import json
import logging
from dataclasses import dataclass
import time

import stripe

from services.exceptions import ConfigurationError, DependencyError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentSession:
    session_id: str
    redirect_url: str


class StripePaymentGateway:
    """
    Thin wrapper over Stripe Checkout.

    Built once per app from config and handed to the booking flows; the api
    key is passed on every call so no process-wide stripe state is touched.
    """

    def __init__(self, api_key, webhook_secret=None, frontend_url='http://localhost:3000',
                 expiry_minutes=30):
        if not api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set in environment variables")
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.frontend_url = frontend_url.rstrip('/')
        self.expiry_minutes = expiry_minutes

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get('STRIPE_SECRET_KEY'),
            webhook_secret=config.get('STRIPE_WEBHOOK_SECRET'),
            frontend_url=config.get('FRONTEND_URL', 'http://localhost:3000'),
            expiry_minutes=config.get('PAYMENT_SESSION_EXPIRY_MINUTES', 30),
        )

    @property
    def success_url(self):
        return f"{self.frontend_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self):
        return f"{self.frontend_url}/payment-cancel"

    def create_session(self, amount, currency, description, metadata):
        """Create a one-item Checkout session that expires after the configured window."""
        expires_at = int(time.time()) + self.expiry_minutes * 60
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                expires_at=expires_at,
                line_items=[{
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount,
                        "product_data": {"name": description},
                    },
                    "quantity": 1,
                }],
                metadata={k: str(v) for k, v in metadata.items() if v is not None},
                success_url=self.success_url,
                cancel_url=self.cancel_url,
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe session creation failed: {str(e)}")
            raise DependencyError("Payment provider error. Please try again.") from e

        logger.info(f"💳 Stripe session {session.id} created ({amount} {currency})")
        return PaymentSession(session_id=session.id, redirect_url=session.url)

    def retrieve_session(self, session_id):
        try:
            return stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe session lookup failed for {session_id}: {str(e)}")
            raise DependencyError("Payment provider error. Please try again.") from e

    def verify_and_parse_event(self, payload, signature):
        """
        Check the Stripe-Signature header against the raw body and return the
        event as a plain dict. Raises WebhookSignatureError on any mismatch.
        """
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not set in environment variables")
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e)) from e
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid payload: {str(e)}") from e

        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')
        return json.loads(payload)
