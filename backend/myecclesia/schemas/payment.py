"""
Pydantic schemas for the payment handlers.
Wire names are camelCase, as sent by the web client.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionRequest(CamelModel):
    # Optional here so a missing id is reported by the handler, after auth
    session_id: Optional[str] = None


class ConfirmPaymentResponse(CamelModel):
    ok: bool
    status: Optional[str] = None


class WebhookResponse(CamelModel):
    received: Optional[bool] = None
    success: Optional[bool] = None
    ticket_id: Optional[str] = None
