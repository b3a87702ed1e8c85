"""
Error taxonomy for the ticketing handlers.

Every fatal condition is an HTTPException subclass so FastAPI's exception
middleware turns it into a response; the registered handler renders all of
them as a single {"error": "<message>"} body.

Best-effort failures are not exceptions at all: see services.best_effort.
"""

from fastapi import HTTPException, status


class TicketingError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(status_code=self.status_code, detail=message)

    @property
    def message(self) -> str:
        return self.detail


class AuthenticationError(TicketingError):
    """No bearer credential, or one that does not verify."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(TicketingError):
    """Caller does not own the session or ticket."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidRequestError(TicketingError):
    """Missing required field or malformed provider metadata."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(TicketingError):
    status_code = status.HTTP_404_NOT_FOUND


class BusinessRuleViolation(TicketingError):
    """Checked-in ticket, past event, sold out, payment required."""

    status_code = status.HTTP_409_CONFLICT


class PaymentProviderError(TicketingError):
    """The payment provider could not be reached or rejected the call."""


class PersistenceError(TicketingError):
    """The authoritative write of a handler failed."""


class ConfigurationError(TicketingError):
    """A secret the handler needs is not configured."""
