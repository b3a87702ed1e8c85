"""
EventRegistration: one row per (user, event), the record of intent/payment
to attend.

Key design decisions:
- Unique constraint on (user_id, event_id) is the upsert conflict target
- Cancellation flips `status`; rows are never deleted
"""

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint, CheckConstraint

from myecclesia.db.base import Base, TimestampMixin
from myecclesia.models.event import new_id

REGISTERED = "registered"
CANCELLED = "cancelled"

PAYMENT_PAID = "paid"
PAYMENT_PENDING = "pending"


class EventRegistration(Base, TimestampMixin):
    __tablename__ = "event_registrations"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=REGISTERED)
    quantity = Column(Integer, nullable=False, default=1)
    payment_status = Column(String(20), nullable=False, default=PAYMENT_PENDING)
    stripe_session_id = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_event_registrations_user_event"),
        CheckConstraint("quantity > 0", name="check_registration_quantity_positive"),
        CheckConstraint("status IN ('registered', 'cancelled')", name="check_registration_status"),
        CheckConstraint("payment_status IN ('paid', 'pending')", name="check_registration_payment_status"),
    )

    def is_paid_by(self, session_id: str) -> bool:
        return self.payment_status == PAYMENT_PAID and self.stripe_session_id == session_id

    def __repr__(self) -> str:
        return (
            f"<EventRegistration(user={self.user_id}, event={self.event_id}, "
            f"status={self.status}, payment={self.payment_status})>"
        )
