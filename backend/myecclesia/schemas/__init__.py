from myecclesia.schemas.payment import SessionRequest, ConfirmPaymentResponse, WebhookResponse
from myecclesia.schemas.ticket import (
    CancelTicketRequest,
    CancelTicketResponse,
    FreeTicketRequest,
    TicketIssuedResponse,
)

__all__ = [
    "SessionRequest", "ConfirmPaymentResponse", "WebhookResponse",
    "CancelTicketRequest", "CancelTicketResponse", "FreeTicketRequest", "TicketIssuedResponse",
]
