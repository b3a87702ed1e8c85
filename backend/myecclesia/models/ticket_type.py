"""
TicketType: a priced category of ticket ("General", "VIP") with its own
sold counter.
"""

from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from myecclesia.db.base import Base, TimestampMixin
from myecclesia.models.event import new_id


class TicketType(Base, TimestampMixin):
    __tablename__ = "ticket_types"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    quantity_available = Column(Integer, nullable=False, default=0)
    quantity_sold = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="ticket_types")

    __table_args__ = (
        CheckConstraint("quantity_sold >= 0", name="check_quantity_sold_non_negative"),
    )

    @property
    def remaining(self) -> int:
        return (self.quantity_available or 0) - (self.quantity_sold or 0)

    def __repr__(self) -> str:
        return f"<TicketType(id={self.id}, name={self.name}, sold={self.quantity_sold}/{self.quantity_available})>"
