"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment_provider import CheckoutSession, PaymentProvider

__all__ = ['CheckoutSession', 'PaymentProvider']
