"""
Ticket payment confirmation and event-capacity reconciliation.

FLOW
====

The client finishes Stripe Checkout and calls us with the session id. We
read the session back from the provider (the source of truth for payment
status) and reflect it into our store:

  1. order row        best-effort   event_ticket_orders -> paid
  2. registration     AUTHORITATIVE upsert on (user_id, event_id)
  3. inventory        best-effort   events.available_tickets -= quantity

There is no transaction around the three writes. Each one commits on its
own, and only a failure of (2) fails the request.

Idempotence
-----------
Clients retry: a redirect landing page polls until the session is paid, and
the provider webhook may reconcile the same session. The upsert makes
repeated registration writes harmless. Once the registration is paid by this
very session, the session has been processed: neither the registration nor
the counter is written again, even if the registration was cancelled since.

Inventory semantics
-------------------
available_tickets NULL  -> uncapped, never touched
available_tickets <= 0  -> exhausted, never touched
available_tickets > 0   -> decremented by quantity, floored at zero

The decrement is one conditional UPDATE, so concurrent confirmations for
different users can interleave without driving the counter negative.
"""

from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.core.exceptions import PersistenceError
from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import record_confirmation
from myecclesia.models.event import Event
from myecclesia.models.order import EventTicketOrder, ORDER_PAID
from myecclesia.models.registration import EventRegistration, REGISTERED, PAYMENT_PAID
from myecclesia.db.upsert import build_upsert
from myecclesia.services.best_effort import best_effort
from myecclesia.services.interfaces.payment_provider import CheckoutSession, PaymentProvider
from myecclesia.services.validation import ensure_owner, require_field, session_metadata

logger = get_logger(__name__)


async def confirm_ticket_payment(
    db: AsyncSession,
    payments: PaymentProvider,
    user_id: str,
    session_id: Optional[str],
) -> dict:
    """
    Confirm a checkout session for the authenticated caller.

    Returns {"ok": True} once the purchase is reflected, or
    {"ok": False, "status": <payment_status>} while the session is unpaid.
    """
    require_field(session_id, "sessionId is required")

    session = await payments.retrieve_session(session_id)
    session_user_id, event_id, quantity = session_metadata(session)
    ensure_owner(
        session_user_id,
        user_id,
        "This checkout session does not belong to the current user",
    )

    if not session.is_paid:
        # Not settled yet; the client polls again later
        logger.info(
            "ticket_payment_not_settled",
            session_id=session_id,
            payment_status=session.payment_status,
        )
        record_confirmation("unpaid")
        return {"ok": False, "status": session.payment_status}

    await apply_paid_session(db, session, user_id, event_id, quantity)
    return {"ok": True}


async def apply_paid_session(
    db: AsyncSession,
    session: CheckoutSession,
    user_id: str,
    event_id: str,
    quantity: int,
) -> bool:
    """
    Reflect a paid session into the order, registration and event rows.
    Returns False when the session had already been applied.
    """
    await best_effort(
        db,
        "order_mark_paid",
        lambda: db.execute(
            update(EventTicketOrder)
            .where(EventTicketOrder.stripe_session_id == session.id)
            .values(
                status=ORDER_PAID,
                amount_pence=session.amount_total,
                currency=session.currency or "gbp",
            )
            .execution_options(synchronize_session=False)
        ),
        session_id=session.id,
    )

    previous = await _get_registration(db, user_id, event_id)
    if previous is not None and previous.is_paid_by(session.id):
        # Registration status is ignored: a cancelled registration keeps its
        # payment, and replaying the session must not revive it
        logger.info("ticket_payment_already_processed", session_id=session.id, event_id=event_id)
        record_confirmation("already_processed")
        return False

    try:
        await db.execute(
            build_upsert(
                db,
                EventRegistration,
                {
                    "user_id": user_id,
                    "event_id": event_id,
                    "status": REGISTERED,
                    "quantity": quantity,
                    "payment_status": PAYMENT_PAID,
                    "stripe_session_id": session.id,
                },
                conflict_columns=("user_id", "event_id"),
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "registration_upsert_failed",
            session_id=session.id,
            event_id=event_id,
            error=str(e),
        )
        raise PersistenceError("Failed to record event registration")

    await best_effort(
        db,
        "event_decrement_available_tickets",
        lambda: db.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_tickets > 0)
            .values(
                available_tickets=case(
                    (Event.available_tickets > quantity, Event.available_tickets - quantity),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        ),
        # NULL or exhausted counters are left alone, so zero rows is normal
        expect_rows=False,
        event_id=event_id,
        quantity=quantity,
    )

    logger.info(
        "ticket_payment_confirmed",
        session_id=session.id,
        event_id=event_id,
        quantity=quantity,
    )
    record_confirmation("confirmed")
    return True


async def _get_registration(
    db: AsyncSession, user_id: str, event_id: str
) -> Optional[EventRegistration]:
    result = await db.execute(
        select(EventRegistration)
        .where(
            EventRegistration.user_id == user_id,
            EventRegistration.event_id == event_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
