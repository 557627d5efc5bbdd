# backend/courtbook/core/exceptions.py
"""
Domain-specific exceptions for the court booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Expected, user-recoverable outcomes (slot conflicts, insufficient funds)
are distinct classes from ServiceException so callers can present an
actionable message instead of a generic failure.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self.__class__.__name__
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


class ValidationException(DomainException):
    """Raised when a request is malformed, before the store is touched."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE
    default_code = "BUSINESS_RULE"


class ServiceException(DomainException):
    """Raised when a store or transaction operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message or "An error occurred processing your request",
            "code": self.code,
            "details": self.details if self.details else {},
        }


# Specific business exceptions


class SlotConflictException(ConflictException):
    """Raised when a requested slot is already held by another booking."""

    default_code = "SLOT_CONFLICT"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is already booked for the selected court",
            details=details or {},
        )


class SlotIllegalException(BusinessRuleException):
    """Raised when a slot is outside opening hours, inside the notice buffer, or overruns closing."""

    default_code = "SLOT_ILLEGAL"

    def __init__(self, message: str, *, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details={"reason": reason, **(details or {})})
        self.reason = reason


class InsufficientFundsException(BusinessRuleException):
    """Raised when a debit would drive a ledger balance below zero."""

    default_code = "INSUFFICIENT_FUNDS"

    def __init__(self, account: str, balance: int, requested: int):
        super().__init__(
            message=f"Insufficient {account}: balance {balance}, required {requested}",
            details={
                "account": account,
                "balance": balance,
                "requested": requested,
                "shortfall": requested - balance,
            },
        )


class ModificationLimitReachedException(BusinessRuleException):
    """Raised when a booking has already been modified the maximum number of times."""

    default_code = "MODIFICATION_LIMIT_REACHED"

    def __init__(self, limit: int):
        super().__init__(
            message=f"A booking can be modified at most {limit} times",
            details={"limit": limit},
        )


class TooCloseToStartException(BusinessRuleException):
    """Raised when a modification is attempted inside the lockout window."""

    default_code = "TOO_CLOSE_TO_START"

    def __init__(self, lockout_minutes: int, minutes_until_start: float):
        super().__init__(
            message=(
                f"Bookings cannot be modified within {lockout_minutes // 60} hours of the start time"
            ),
            details={
                "lockout_minutes": lockout_minutes,
                "minutes_until_start": round(minutes_until_start, 2),
            },
        )


class InvalidTransitionException(ConflictException):
    """Raised when a lifecycle transition is not allowed from the current state."""

    default_code = "INVALID_TRANSITION"

    def __init__(self, message: str, *, current: str, target: Optional[str] = None):
        super().__init__(
            message=message,
            details={"current_status": current, "target_status": target},
        )


class TaskRecentlyCompletedException(BusinessRuleException):
    """Raised when a points task is completed again inside its cooldown."""

    default_code = "TASK_RECENTLY_COMPLETED"

    def __init__(self, task_id: str, cooldown_hours: int):
        super().__init__(
            message=f"Task {task_id} can be completed once every {cooldown_hours} hours",
            details={"task_id": task_id, "cooldown_hours": cooldown_hours},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class SlotHoldIntegrityError(RepositoryException):
    """Raised when the unique slot-hold constraint rejects an insert."""
