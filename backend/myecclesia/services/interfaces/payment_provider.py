"""
Payment provider interface.
The provider hosts the charge; handlers only ever read a checkout session
back from it (or receive one in a signed webhook).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

PAID = "paid"


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    payment_status: str  # paid, unpaid, no_payment_required
    status: Optional[str] = None  # open, complete, expired
    metadata: dict[str, str] = field(default_factory=dict)
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    payment_intent: Optional[str] = None
    customer_email: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CheckoutSession":
        """Build from the provider's JSON representation of a session."""
        metadata = payload.get("metadata") or {}
        customer = payload.get("customer_details") or {}
        return cls(
            id=payload["id"],
            payment_status=payload.get("payment_status") or "unpaid",
            status=payload.get("status"),
            metadata={k: str(v) for k, v in metadata.items() if v is not None},
            amount_total=payload.get("amount_total"),
            currency=payload.get("currency"),
            payment_intent=payload.get("payment_intent"),
            customer_email=customer.get("email"),
        )


class PaymentProvider(ABC):
    """
    Interface for the payment provider.

    Implementations:
    - StripePaymentProvider: Stripe Checkout
    """

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        """
        Fetch a checkout session by id.

        Raises:
            PaymentProviderError: provider unreachable or rejected the call
        """

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        """
        Check the signature of a webhook delivery and return the event.

        Raises:
            InvalidRequestError: missing or bad signature
        """
