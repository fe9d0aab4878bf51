"""Ledger exception hierarchy.

Every rejection raised by the settlement core is a ``LedgerError`` carrying
an error code and a human-readable message. Validation, conflict and
not-found errors are raised before any mutation; storage and scheduler
faults mean the surrounding transaction was rolled back.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for ledger errors."""

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    FORBIDDEN = "FORBIDDEN"

    # Validation
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    KYC_REQUIRED = "KYC_REQUIRED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    RATE_LIMITED = "RATE_LIMITED"

    # Conflict
    ALREADY_JOINED = "ALREADY_JOINED"
    TOURNAMENT_CLOSED = "TOURNAMENT_CLOSED"
    TOURNAMENT_FULL = "TOURNAMENT_FULL"
    INVALID_STATE = "INVALID_STATE"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    SOLD_OUT = "SOLD_OUT"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    BONUS_ALREADY_ACTIVE = "BONUS_ALREADY_ACTIVE"

    # Not found
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    TICKET_TYPE_NOT_FOUND = "TICKET_TYPE_NOT_FOUND"
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"
    TOURNAMENT_NOT_FOUND = "TOURNAMENT_NOT_FOUND"
    REDEMPTION_NOT_FOUND = "REDEMPTION_NOT_FOUND"
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    FRIENDSHIP_NOT_FOUND = "FRIENDSHIP_NOT_FOUND"
    BONUS_NOT_FOUND = "BONUS_NOT_FOUND"

    # Faults
    STORAGE_FAULT = "STORAGE_FAULT"
    SCHEDULER_FAULT = "SCHEDULER_FAULT"


class LedgerError(Exception):
    """Base exception for ledger-related errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        retryable: Whether the caller may retry the same request
    """

    default_code: ErrorCode = ErrorCode.INVALID_REQUEST

    def __init__(
        self,
        message: str,
        code: ErrorCode | str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        code = code or self.default_code
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(LedgerError):
    """Missing or out-of-range input. No side effects occurred."""


class InsufficientBalanceError(ValidationError):
    """Raised when a debit exceeds the player's balance."""

    def __init__(self, currency: str, required: int, available: int):
        super().__init__(
            f"Insufficient {currency.upper()} balance",
            code=ErrorCode.INSUFFICIENT_BALANCE,
            details={
                "currency": currency,
                "required": required,
                "available": available,
            },
        )


class KycRequiredError(ValidationError):
    """Raised when an SC redemption is attempted without verified KYC."""

    def __init__(self, kyc_status: str):
        super().__init__(
            "KYC verification required",
            code=ErrorCode.KYC_REQUIRED,
            details={"kycStatus": kyc_status},
        )


class RateLimitedError(ValidationError):
    """Raised when a player exceeds a per-minute action limit."""

    def __init__(self, limit: int, window_seconds: int = 60):
        super().__init__(
            f"Rate limit exceeded. Max {limit} per {window_seconds} seconds.",
            code=ErrorCode.RATE_LIMITED,
            details={"limit": limit, "windowSeconds": window_seconds},
        )


class ConflictError(LedgerError):
    """The request conflicts with current state. Nothing was mutated."""

    default_code = ErrorCode.INVALID_STATE


class PermissionDeniedError(LedgerError):
    """The caller may not act on this resource."""

    default_code = ErrorCode.FORBIDDEN


class NotFoundError(LedgerError):
    """An identifier did not resolve to a row."""

    def __init__(self, entity: str, entity_id: object, code: ErrorCode):
        super().__init__(
            f"{entity} not found",
            code=code,
            details={"id": str(entity_id)},
        )


class StorageFault(LedgerError):
    """Transaction commit failed; the whole unit was rolled back."""

    default_code = ErrorCode.STORAGE_FAULT

    def __init__(self, message: str = "Storage failure, please retry"):
        super().__init__(message, retryable=True)


class SchedulerFault(LedgerError):
    """Processing of one tournament failed during a sweep."""

    default_code = ErrorCode.SCHEDULER_FAULT

    def __init__(self, tournament_id: str, cause: BaseException):
        super().__init__(
            f"Tournament {tournament_id} could not be processed",
            details={"tournamentId": tournament_id, "cause": type(cause).__name__},
            retryable=True,
        )
