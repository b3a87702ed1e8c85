"""
Ticket endpoints: cancellation and free ticket issuance.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.api.cors import preflight
from myecclesia.core.security import get_current_user_id
from myecclesia.db.session import get_db
from myecclesia.schemas.ticket import (
    CancelTicketRequest,
    CancelTicketResponse,
    FreeTicketRequest,
    TicketIssuedResponse,
)
from myecclesia.services.cancellation_service import cancel_ticket
from myecclesia.services.ticket_service import issue_free_ticket

router = APIRouter(tags=["Tickets"])

router.add_api_route("/cancel-ticket", preflight, methods=["OPTIONS"], include_in_schema=False)
router.add_api_route("/create-free-ticket", preflight, methods=["OPTIONS"], include_in_schema=False)


@router.post("/cancel-ticket", response_model=CancelTicketResponse)
async def cancel_ticket_endpoint(
    payload: CancelTicketRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel one of the caller's tickets.

    Checked-in tickets and tickets for past events are refused. Cancelling a
    cancelled ticket succeeds without doing anything.
    """
    return await cancel_ticket(db, user_id, payload.ticket_id)


@router.post("/create-free-ticket", response_model=TicketIssuedResponse)
async def create_free_ticket_endpoint(
    payload: FreeTicketRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Issue a ticket for a free event or a free ticket type."""
    return await issue_free_ticket(
        db,
        user_id,
        event_id=payload.event_id,
        event_slug=payload.event_slug,
        quantity=payload.quantity,
        ticket_type_id=payload.ticket_type_id,
    )
