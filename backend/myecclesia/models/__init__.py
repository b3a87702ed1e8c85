from myecclesia.models.event import Event
from myecclesia.models.registration import EventRegistration
from myecclesia.models.ticket import Ticket
from myecclesia.models.ticket_type import TicketType
from myecclesia.models.order import EventTicketOrder

__all__ = ["Event", "EventRegistration", "Ticket", "TicketType", "EventTicketOrder"]
