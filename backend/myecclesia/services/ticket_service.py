"""
Ticket issuance.

Two ways a ticket comes into existence:
  - paid:  from a checkout session the provider reports as paid; the
           session id is stored as tickets.payment_id, so issuing twice
           for one session returns the first ticket
  - free:  for free events / free ticket types, one active ticket per
           user per event

The ticket insert is authoritative. The registration mirror and the ticket
type's sold counter follow as best-effort writes, as in cancellation.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.core.exceptions import BusinessRuleViolation, NotFoundError, PersistenceError
from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import record_ticket_issued
from myecclesia.db.upsert import build_upsert
from myecclesia.models.event import Event
from myecclesia.models.registration import EventRegistration, REGISTERED, PAYMENT_PAID
from myecclesia.models.ticket import Ticket, ACTIVE
from myecclesia.models.ticket_type import TicketType
from myecclesia.services.best_effort import best_effort
from myecclesia.services.interfaces.payment_provider import CheckoutSession, PaymentProvider
from myecclesia.services.validation import ensure_owner, parse_quantity, require_field

logger = get_logger(__name__)


async def issue_ticket_for_session(
    db: AsyncSession,
    payments: PaymentProvider,
    user_id: str,
    session_id: Optional[str],
) -> dict:
    """Issue the ticket paid for by a checkout session."""
    require_field(session_id, "Session ID is required")

    session = await payments.retrieve_session(session_id)
    if not session.is_paid:
        raise BusinessRuleViolation("Payment not completed")

    metadata = session.metadata or {}
    if not metadata.get("event_id") and not metadata.get("event_slug"):
        raise NotFoundError("Event information not found in session")
    if metadata.get("user_id"):
        ensure_owner(
            metadata["user_id"],
            user_id,
            "This checkout session does not belong to the current user",
        )

    event = await _resolve_event(db, metadata.get("event_id"), metadata.get("event_slug"))
    ticket_id, created = await create_ticket_for_session(db, session, user_id, event.id)
    return {
        "success": True,
        "ticketId": ticket_id,
        "message": "Ticket created successfully" if created else "Ticket already created",
    }


async def create_ticket_for_session(
    db: AsyncSession,
    session: CheckoutSession,
    user_id: str,
    event_id: str,
) -> tuple[str, bool]:
    """
    Return (ticket_id, created). An existing ticket for the session is
    returned as-is; otherwise a new active ticket is inserted.
    """
    existing = await _ticket_for_payment(db, session.id)
    if existing is not None:
        logger.info("ticket_already_issued", ticket_id=existing.id, session_id=session.id)
        record_ticket_issued("paid", "existing")
        return existing.id, False

    metadata = session.metadata or {}
    quantity = parse_quantity(metadata.get("quantity"))
    ticket_type_id = metadata.get("ticket_type_id") or None

    ticket = Ticket(
        user_id=user_id,
        event_id=event_id,
        ticket_type_id=ticket_type_id,
        quantity=quantity,
        status=ACTIVE,
        payment_id=session.id,
        payment_metadata={
            "type": "paid",
            "stripe_session_id": session.id,
            "amount_total": session.amount_total,
            "currency": session.currency,
            "customer_email": session.customer_email,
        },
    )
    try:
        db.add(ticket)
        await db.commit()
    except IntegrityError:
        # A concurrent request issued it first; payment_id is unique
        await db.rollback()
        existing = await _ticket_for_payment(db, session.id)
        if existing is None:
            raise PersistenceError("Failed to create ticket")
        record_ticket_issued("paid", "existing")
        return existing.id, False
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("ticket_create_failed", session_id=session.id, error=str(e))
        raise PersistenceError("Failed to create ticket")

    await db.refresh(ticket)
    ticket_id = ticket.id
    logger.info("ticket_issued", ticket_id=ticket_id, session_id=session.id, quantity=quantity)

    await _register_attendee(db, user_id, event_id, quantity, session.id, ticket_id)
    if ticket_type_id:
        await _add_sold(db, ticket_type_id, quantity, ticket_id)

    record_ticket_issued("paid", "created")
    return ticket_id, True


async def issue_free_ticket(
    db: AsyncSession,
    user_id: str,
    event_id: Optional[str],
    event_slug: Optional[str],
    quantity: int = 1,
    ticket_type_id: Optional[str] = None,
) -> dict:
    quantity = max(1, quantity or 1)
    logger.info(
        "free_ticket_requested",
        event_id=event_id,
        event_slug=event_slug,
        quantity=quantity,
        ticket_type_id=ticket_type_id,
    )

    event = await _resolve_event(db, event_id, event_slug)
    if event.price and event.price > 0 and not ticket_type_id:
        raise BusinessRuleViolation("This event requires payment")

    if ticket_type_id:
        ticket_type = await db.get(TicketType, ticket_type_id, populate_existing=True)
        if ticket_type is None or ticket_type.event_id != event.id:
            raise NotFoundError("Ticket type not found")
        if ticket_type.price and ticket_type.price > 0:
            raise BusinessRuleViolation("This ticket type requires payment")
        if ticket_type.remaining < quantity:
            raise BusinessRuleViolation("Not enough tickets available")

    result = await db.execute(
        select(Ticket).where(
            Ticket.event_id == event.id,
            Ticket.user_id == user_id,
            Ticket.status == ACTIVE,
        ).limit(1)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        record_ticket_issued("free", "existing")
        return {
            "success": True,
            "ticketId": existing.id,
            "message": "You already have a ticket for this event",
        }

    resolved_event_id = event.id
    ticket = Ticket(
        user_id=user_id,
        event_id=resolved_event_id,
        ticket_type_id=ticket_type_id,
        quantity=quantity,
        status=ACTIVE,
        payment_metadata={"type": "free", "event_title": event.title},
    )
    try:
        db.add(ticket)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("ticket_create_failed", event_id=resolved_event_id, error=str(e))
        raise PersistenceError("Failed to create ticket")

    await db.refresh(ticket)
    ticket_id = ticket.id
    logger.info("free_ticket_issued", ticket_id=ticket_id, event_id=resolved_event_id)

    await _register_attendee(db, user_id, resolved_event_id, quantity, None, ticket_id)
    if ticket_type_id:
        await _add_sold(db, ticket_type_id, quantity, ticket_id)

    record_ticket_issued("free", "created")
    return {
        "success": True,
        "ticketId": ticket_id,
        "message": "Free ticket created successfully",
    }


async def _resolve_event(
    db: AsyncSession, event_id: Optional[str], event_slug: Optional[str]
) -> Event:
    event = None
    if event_id:
        event = await db.get(Event, event_id)
    elif event_slug:
        result = await db.execute(select(Event).where(Event.slug == event_slug))
        event = result.scalar_one_or_none()

    if event is None:
        raise NotFoundError("Event not found")
    return event


async def _ticket_for_payment(db: AsyncSession, session_id: str) -> Optional[Ticket]:
    result = await db.execute(select(Ticket).where(Ticket.payment_id == session_id))
    return result.scalar_one_or_none()


async def _register_attendee(
    db: AsyncSession,
    user_id: str,
    event_id: str,
    quantity: int,
    session_id: Optional[str],
    ticket_id: str,
) -> None:
    values = {
        "user_id": user_id,
        "event_id": event_id,
        "status": REGISTERED,
        "quantity": quantity,
        "payment_status": PAYMENT_PAID,
    }
    if session_id:
        values["stripe_session_id"] = session_id

    await best_effort(
        db,
        "registration_upsert",
        lambda: db.execute(
            build_upsert(db, EventRegistration, values, conflict_columns=("user_id", "event_id"))
        ),
        ticket_id=ticket_id,
        event_id=event_id,
    )


async def _add_sold(db: AsyncSession, ticket_type_id: str, quantity: int, ticket_id: str) -> None:
    await best_effort(
        db,
        "ticket_type_add_sold",
        lambda: db.execute(
            update(TicketType)
            .where(TicketType.id == ticket_type_id)
            .values(quantity_sold=TicketType.quantity_sold + quantity)
            .execution_options(synchronize_session=False)
        ),
        ticket_id=ticket_id,
        ticket_type_id=ticket_type_id,
    )
