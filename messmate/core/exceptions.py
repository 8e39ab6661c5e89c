"""
Domain exceptions for the slot booking and dues ledger core.

Services raise these with a human-readable message; routers translate
them into HTTP responses.
"""

from typing import Optional


class MessMateError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class NotFoundError(MessMateError):
    """Reservation, user, mess or notification does not exist."""


class InvalidStateTransitionError(MessMateError):
    """Reservation status does not allow the requested transition."""

    def __init__(self, current: str, action: str) -> None:
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} booking slot in status {current}")


class ValidationError(MessMateError):
    """Required field missing or malformed."""


class CapacityExceededError(MessMateError):
    """Slot already holds the maximum number of active reservations."""


class DependencyFailureError(MessMateError):
    """A collaborator (notification sink) failed. Never leaves the dispatch hook."""
