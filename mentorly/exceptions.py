# mentorly/exceptions.py
"""
Domain exceptions for the booking and session lifecycle engine.

Every error carries a machine-readable ``code`` and a ``details`` dict with
enough context (session id, attempted event, current status) for the caller
to decide between surfacing a message and retrying.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


# ======================
# INPUT VALIDATION (caller bugs, not retryable as-is)
# ======================

class ValidationException(DomainException):
    """Raised when business validation of an input fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRangeError(ValidationException):
    pass


class InvalidDurationError(ValidationException):
    pass


class InvalidAvailabilityError(ValidationException):
    """Weekly pattern rows violate ordering or overlap rules."""


class InvalidPriceError(ValidationException):
    pass


class NotFoundError(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


# ======================
# BOOKING
# ======================

class BookingError(DomainException):
    """Base class for failures of the booking orchestrator."""

    status_code = status.HTTP_409_CONFLICT


class SlotUnavailableError(BookingError):
    """The slot was taken between read and commit. Re-query and retry."""


class MentorUnavailableError(BookingError):
    pass


class FreeTrialNotEligibleError(BookingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


# ======================
# SESSION LIFECYCLE
# ======================

class InvalidTransitionError(DomainException):
    """Transition attempted from a terminal or incompatible state."""

    status_code = status.HTTP_409_CONFLICT


class UnauthorizedActorError(DomainException):
    """Caller is not a participant, or has the wrong role for the event."""

    status_code = status.HTTP_403_FORBIDDEN


class ReasonRequiredError(DomainException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
