"""
Stripe implementation of the payment provider.

The Stripe SDK is synchronous, so session lookups run in Starlette's
threadpool. Network retries are left at the SDK default of zero: a lookup
that fails or times out is reported to the caller, who owns retry policy.
"""

import json
import time
from typing import Optional

import stripe
from starlette.concurrency import run_in_threadpool

from myecclesia.core.config import Settings
from myecclesia.core.exceptions import ConfigurationError, InvalidRequestError, PaymentProviderError
from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import payment_provider_latency
from myecclesia.services.interfaces.payment_provider import CheckoutSession, PaymentProvider

logger = get_logger(__name__)


class StripePaymentProvider(PaymentProvider):

    def __init__(self, settings: Settings):
        self.api_key = settings.STRIPE_SECRET_KEY
        self.api_version = settings.STRIPE_API_VERSION
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        self.webhook_tolerance = settings.STRIPE_WEBHOOK_TOLERANCE

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        if not self.api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set")

        start = time.perf_counter()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve,
                session_id,
                api_key=self.api_key,
                stripe_version=self.api_version,
            )
        except stripe.StripeError as e:
            logger.error(
                "stripe_session_retrieve_failed",
                session_id=session_id,
                error=e.user_message or str(e),
            )
            raise PaymentProviderError(e.user_message or str(e))
        finally:
            payment_provider_latency.labels(operation="retrieve_session").observe(
                time.perf_counter() - start
            )

        checkout = CheckoutSession.from_payload(session.to_dict())
        logger.info(
            "stripe_session_fetched",
            session_id=session_id,
            payment_status=checkout.payment_status,
            status=checkout.status,
        )
        return checkout

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not set")
        if not signature:
            raise InvalidRequestError("Invalid signature")

        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, self.webhook_tolerance
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("stripe_webhook_signature_invalid", error=str(e))
            raise InvalidRequestError("Invalid signature")

        try:
            return json.loads(body)
        except ValueError:
            raise InvalidRequestError("Invalid payload")
