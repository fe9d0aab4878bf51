"""Tests for the ledger error hierarchy."""

from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    KycRequiredError,
    LedgerError,
    NotFoundError,
    RateLimitedError,
    SchedulerFault,
    StorageFault,
    ValidationError,
)


class TestLedgerErrors:
    def test_default_codes(self):
        assert ValidationError("bad").code == ErrorCode.INVALID_REQUEST.value
        assert ConflictError("state").code == ErrorCode.INVALID_STATE.value
        assert StorageFault().code == ErrorCode.STORAGE_FAULT.value

    def test_insufficient_balance_is_validation(self):
        """Balance shortfalls are rejected input, not conflicts."""
        error = InsufficientBalanceError("gc", required=500, available=100)

        assert isinstance(error, ValidationError)
        assert error.code == "INSUFFICIENT_BALANCE"
        assert error.details == {"currency": "gc", "required": 500, "available": 100}

    def test_kyc_and_rate_limit_are_validation(self):
        assert isinstance(KycRequiredError("pending"), ValidationError)
        limited = RateLimitedError(50)
        assert isinstance(limited, ValidationError)
        assert limited.details == {"limit": 50, "windowSeconds": 60}

    def test_not_found_carries_id(self):
        error = NotFoundError("Player", "p-1", ErrorCode.PLAYER_NOT_FOUND)
        assert error.code == "PLAYER_NOT_FOUND"
        assert error.details == {"id": "p-1"}

    def test_faults_are_retryable(self):
        assert StorageFault().retryable is True
        fault = SchedulerFault("t-1", RuntimeError("deadlock"))
        assert fault.retryable is True
        assert fault.details == {"tournamentId": "t-1", "cause": "RuntimeError"}

    def test_to_dict(self):
        error = LedgerError("nope", code="CUSTOM", details={"a": 1})
        assert error.to_dict() == {
            "code": "CUSTOM",
            "message": "nope",
            "details": {"a": 1},
            "retryable": False,
        }
