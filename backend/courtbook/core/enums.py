# backend/courtbook/core/enums.py
"""
Core enums for the court booking engine.

Closed sets of values used by models, services and schemas. Payment
methods and lifecycle reasons are modelled as enums so that invalid
combinations are rejected before they reach the store.
"""

from enum import Enum


class Sport(str, Enum):
    BADMINTON = "badminton"
    PICKLEBALL = "pickleball"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Holds the slot, awaiting payment
    CONFIRMED = "confirmed"  # Paid, holds the slot
    CANCELLED = "cancelled"  # Terminal
    COMPLETED = "completed"  # Terminal, derived once the end time has elapsed

    @property
    def holds_slot(self) -> bool:
        return self in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


SLOT_HOLDING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class PaymentMethod(str, Enum):
    CREDITS = "credits"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    AWAITING_PROOF = "awaiting_proof"
    PROOF_SUBMITTED = "proof_submitted"
    PAID = "paid"
    REFUNDED = "refunded"
    REJECTED = "rejected"


class CancellationReason(str, Enum):
    USER_CANCELLED = "user_cancelled"
    PAYMENT_REJECTED = "payment_rejected"
    PAYMENT_EXPIRED = "payment_expired"


class LedgerAccountKind(str, Enum):
    CREDITS = "credits"
    POINTS = "points"


class LedgerReason(str, Enum):
    EARNED = "earned"
    SPENT = "spent"
    PURCHASED = "purchased"
    REFUNDED = "refunded"
    BONUS = "bonus"
    REVERSED = "reversed"


DEBIT_REASONS = frozenset({LedgerReason.SPENT, LedgerReason.REVERSED})
CREDIT_REASONS = frozenset(
    {LedgerReason.EARNED, LedgerReason.PURCHASED, LedgerReason.REFUNDED, LedgerReason.BONUS}
)


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewTarget(str, Enum):
    """What an administrative payment-proof review applies to."""

    BOOKING = "booking"
    PURCHASE = "purchase"
