"""
Payment provider factory.
Handlers receive the provider as a dependency so tests can swap it out.
"""

from fastapi import Depends

from myecclesia.core.config import Settings, get_settings
from myecclesia.services.interfaces.payment_provider import PaymentProvider
from myecclesia.services.stripe_service import StripePaymentProvider


def get_payment_provider(settings: Settings = Depends(get_settings)) -> PaymentProvider:
    return StripePaymentProvider(settings)
