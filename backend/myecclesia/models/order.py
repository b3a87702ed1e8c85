"""
EventTicketOrder: the server-side record written when a checkout session is
created, keyed by the provider's session id.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint

from myecclesia.db.base import Base, TimestampMixin
from myecclesia.models.event import new_id

ORDER_PENDING = "pending"
ORDER_PAID = "paid"


class EventTicketOrder(Base, TimestampMixin):
    __tablename__ = "event_ticket_orders"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    amount_pence = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="gbp")
    stripe_session_id = Column(String(255), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=ORDER_PENDING)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'paid')", name="check_order_status"),
    )

    def __repr__(self) -> str:
        return f"<EventTicketOrder(session={self.stripe_session_id}, status={self.status})>"
