"""
Ticket: an issued, cancellable unit, distinct from the registration row.

Key design decisions:
- `payment_id` holds the checkout session that paid for the ticket and is
  unique, so issuing from the same session twice finds the first ticket
- A ticket only ever moves active -> cancelled, never back
"""

from sqlalchemy import Column, Integer, String, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from myecclesia.db.base import Base, TimestampMixin
from myecclesia.models.event import new_id

ACTIVE = "active"
CANCELLED = "cancelled"

NOT_CHECKED_IN = "not_checked_in"
CHECKED_IN = "checked_in"


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    ticket_type_id = Column(String(36), ForeignKey("ticket_types.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=ACTIVE)
    check_in_status = Column(String(20), nullable=False, default=NOT_CHECKED_IN)
    payment_id = Column(String(255), nullable=True, unique=True)
    payment_metadata = Column(JSON, nullable=True)

    event = relationship("Event", back_populates="tickets")
    ticket_type = relationship("TicketType")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_ticket_quantity_positive"),
        CheckConstraint("status IN ('active', 'cancelled')", name="check_ticket_status"),
        CheckConstraint(
            "check_in_status IN ('not_checked_in', 'checked_in')",
            name="check_ticket_check_in_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
