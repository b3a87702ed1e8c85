"""
Payment provider webhook.

checkout.session.completed is reconciled exactly like a client
confirmation (apply_paid_session) and then the session's ticket is issued.
Both steps are idempotent per session, so the webhook and the client's own
confirmation call may arrive in either order, or more than once.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.core.exceptions import InvalidRequestError
from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import record_webhook_event
from myecclesia.services.confirmation_service import apply_paid_session
from myecclesia.services.interfaces.payment_provider import CheckoutSession, PaymentProvider
from myecclesia.services.ticket_service import create_ticket_for_session
from myecclesia.services.validation import parse_quantity

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


async def handle_payment_webhook(
    db: AsyncSession,
    payments: PaymentProvider,
    payload: bytes,
    signature: Optional[str],
) -> dict:
    event = payments.verify_webhook(payload, signature)
    event_type = event.get("type", "unknown")
    record_webhook_event(event_type)
    logger.info("payment_webhook_received", event_type=event_type, event_id=event.get("id"))

    if event_type != CHECKOUT_COMPLETED:
        return {"received": True}

    try:
        session = CheckoutSession.from_payload(event["data"]["object"])
    except (KeyError, TypeError, AttributeError):
        raise InvalidRequestError("Invalid payload")

    if not session.is_paid:
        # Delayed payment methods complete checkout before the money arrives
        logger.info(
            "payment_webhook_session_unpaid",
            session_id=session.id,
            payment_status=session.payment_status,
        )
        return {"received": True}

    user_id = session.metadata.get("user_id")
    event_id = session.metadata.get("event_id")
    if not user_id or not event_id:
        logger.warning("payment_webhook_missing_metadata", session_id=session.id)
        raise InvalidRequestError("Missing metadata")

    quantity = parse_quantity(session.metadata.get("quantity"))
    await apply_paid_session(db, session, user_id, event_id, quantity)
    ticket_id, _ = await create_ticket_for_session(db, session, user_id, event_id)

    return {"success": True, "ticketId": ticket_id}
