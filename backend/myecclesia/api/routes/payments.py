"""
Payment endpoints: checkout confirmation, paid ticket issuance, webhook.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.api.cors import preflight
from myecclesia.core.security import get_current_user_id
from myecclesia.db.session import get_db
from myecclesia.schemas.payment import SessionRequest, ConfirmPaymentResponse, WebhookResponse
from myecclesia.schemas.ticket import TicketIssuedResponse
from myecclesia.services.confirmation_service import confirm_ticket_payment
from myecclesia.services.interfaces.payment_provider import PaymentProvider
from myecclesia.services.provider_factory import get_payment_provider
from myecclesia.services.ticket_service import issue_ticket_for_session
from myecclesia.services.webhook_service import handle_payment_webhook

router = APIRouter(tags=["Payments"])

router.add_api_route("/confirm-ticket-payment", preflight, methods=["OPTIONS"], include_in_schema=False)
router.add_api_route("/verify-ticket-payment", preflight, methods=["OPTIONS"], include_in_schema=False)
router.add_api_route("/ticket-webhook", preflight, methods=["OPTIONS"], include_in_schema=False)


@router.post(
    "/confirm-ticket-payment",
    response_model=ConfirmPaymentResponse,
    response_model_exclude_none=True,
)
async def confirm_ticket_payment_endpoint(
    payload: SessionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """
    Reflect a completed checkout into the caller's registration and the
    event's remaining tickets.

    Answers {"ok": false, "status": ...} while the session is not paid yet;
    the client polls until it is.
    """
    return await confirm_ticket_payment(db, payments, user_id, payload.session_id)


@router.post("/verify-ticket-payment", response_model=TicketIssuedResponse)
async def verify_ticket_payment_endpoint(
    payload: SessionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Issue (or return) the ticket paid for by a checkout session."""
    return await issue_ticket_for_session(db, payments, user_id, payload.session_id)


@router.post(
    "/ticket-webhook",
    response_model=WebhookResponse,
    response_model_exclude_none=True,
)
async def ticket_webhook_endpoint(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Signed provider callback; no bearer credential."""
    body = await request.body()
    return await handle_payment_webhook(db, payments, body, stripe_signature)
