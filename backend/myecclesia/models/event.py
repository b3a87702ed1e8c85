"""
Event model with remaining-ticket inventory.

Key design decisions:
- `available_tickets` is nullable: NULL means the organiser set no cap
- Zero is "exhausted"; the counter is never decremented below it
- `date` is a calendar date; time-of-day is free text and plays no part
  in cancellation eligibility
"""

import uuid

from sqlalchemy import Column, Date, Index, Integer, Numeric, String, CheckConstraint
from sqlalchemy.orm import relationship

from myecclesia.db.base import Base, TimestampMixin


def new_id() -> str:
    return str(uuid.uuid4())


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, unique=True)
    date = Column(Date, nullable=True)
    time = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    available_tickets = Column(Integer, nullable=True)

    # Relationships
    ticket_types = relationship("TicketType", back_populates="event", lazy="selectin")
    tickets = relationship("Ticket", back_populates="event")

    __table_args__ = (
        CheckConstraint(
            "available_tickets IS NULL OR available_tickets >= 0",
            name="check_available_tickets_non_negative",
        ),
        Index("ix_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_tickets})>"
