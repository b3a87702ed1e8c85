"""
Pydantic schemas for ticket issuance and cancellation.
"""

from typing import Optional
from pydantic import Field

from myecclesia.schemas.payment import CamelModel


class CancelTicketRequest(CamelModel):
    ticket_id: Optional[str] = None


class CancelTicketResponse(CamelModel):
    success: bool
    message: str


class FreeTicketRequest(CamelModel):
    event_id: Optional[str] = None
    event_slug: Optional[str] = None
    quantity: int = Field(default=1, gt=0, le=20)
    ticket_type_id: Optional[str] = None


class TicketIssuedResponse(CamelModel):
    success: bool
    ticket_id: str
    message: str
