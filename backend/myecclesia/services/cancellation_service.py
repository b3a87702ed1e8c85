"""
Ticket cancellation.

The ticket row is authoritative: once it reads "cancelled" the cancellation
has happened. The registration mirror and the ticket type's sold counter are
best-effort follow-ups.

Cancelling does not hand tickets back to events.available_tickets; only
ticket_types.quantity_sold is reduced.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from myecclesia.core.exceptions import BusinessRuleViolation, NotFoundError, PersistenceError
from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import record_cancellation
from myecclesia.models.registration import EventRegistration, CANCELLED as REGISTRATION_CANCELLED
from myecclesia.models.ticket import Ticket, CANCELLED, CHECKED_IN
from myecclesia.models.ticket_type import TicketType
from myecclesia.services.best_effort import best_effort
from myecclesia.services.validation import ensure_owner, require_field

logger = get_logger(__name__)

ALREADY_CANCELLED = {"success": True, "message": "Ticket is already cancelled"}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


async def cancel_ticket(
    db: AsyncSession,
    user_id: str,
    ticket_id: Optional[str],
    today: Optional[date] = None,
) -> dict:
    require_field(ticket_id, "Ticket ID is required")
    logger.info("ticket_cancellation_requested", ticket_id=ticket_id)

    result = await db.execute(
        select(Ticket)
        .options(selectinload(Ticket.event))
        .where(Ticket.id == ticket_id)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise NotFoundError("Ticket not found")

    ensure_owner(ticket.user_id, user_id, "You don't have permission to cancel this ticket")

    if ticket.status == CANCELLED:
        record_cancellation("already_cancelled")
        return dict(ALREADY_CANCELLED)

    if ticket.check_in_status == CHECKED_IN:
        raise BusinessRuleViolation("Cannot cancel a ticket that has already been checked in")

    # Date-only comparison: a ticket stays cancellable all day on the event date
    event = ticket.event
    if event is not None and event.date is not None and event.date < (today or utc_today()):
        raise BusinessRuleViolation("Cannot cancel a ticket for a past event")

    # A rollback expires loaded rows, so keep plain values for the follow-ups
    ticket_pk = ticket.id
    event_id = ticket.event_id
    ticket_type_id = ticket.ticket_type_id
    released = ticket.quantity or 1

    try:
        result = await db.execute(
            update(Ticket)
            .where(Ticket.id == ticket_pk, Ticket.status != CANCELLED)
            .values(status=CANCELLED, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        cancelled = result.rowcount
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("ticket_cancel_failed", ticket_id=ticket_pk, error=str(e))
        raise PersistenceError("Failed to cancel ticket")

    if cancelled == 0:
        # A concurrent request cancelled it after our read; it did the releases
        logger.info("ticket_already_cancelled_concurrently", ticket_id=ticket_pk)
        record_cancellation("already_cancelled")
        return dict(ALREADY_CANCELLED)

    logger.info("ticket_cancelled", ticket_id=ticket_pk, event_id=event_id)

    await best_effort(
        db,
        "registration_cancel",
        lambda: db.execute(
            update(EventRegistration)
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.user_id == user_id,
            )
            .values(status=REGISTRATION_CANCELLED)
            .execution_options(synchronize_session=False)
        ),
        ticket_id=ticket_pk,
        event_id=event_id,
    )

    if ticket_type_id:
        step = await best_effort(
            db,
            "ticket_type_release",
            lambda: db.execute(
                update(TicketType)
                .where(TicketType.id == ticket_type_id)
                .values(
                    quantity_sold=case(
                        (TicketType.quantity_sold > released, TicketType.quantity_sold - released),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            ),
            ticket_type_id=ticket_type_id,
        )
        if step.applied:
            logger.info(
                "ticket_type_quantity_released",
                ticket_type_id=ticket_type_id,
                released=released,
            )

    record_cancellation("cancelled")
    return {"success": True, "message": "Ticket cancelled successfully"}
