"""
Error model tests: stable codes and result envelopes.
"""

import pytest

from ledgermart.errors import (
    ERROR_TYPES,
    AlreadyListed,
    ErrorCode,
    InsufficientBalance,
    InvalidParams,
    MarketError,
    NotListed,
    OperationResult,
    SelfTransfer,
    error_for,
)


class TestErrorCodes:

    def test_numeric_values_are_stable(self):
        assert [(c.name, int(c)) for c in ErrorCode] == [
            ("NOT_AUTHORIZED", 100),
            ("ASSET_NOT_FOUND", 101),
            ("INSUFFICIENT_BALANCE", 102),
            ("INVALID_PRICE", 103),
            ("ALREADY_LISTED", 104),
            ("NOT_LISTED", 105),
            ("INVALID_PARAMS", 106),
            ("SELF_TRANSFER", 107),
            ("INVALID_METADATA", 108),
        ]

    def test_every_code_has_an_exception_type(self):
        assert set(ERROR_TYPES) == set(ErrorCode)
        for code, cls in ERROR_TYPES.items():
            assert issubclass(cls, MarketError)
            assert cls.code == code

    def test_reserved_codes_still_constructible(self):
        assert AlreadyListed().code == ErrorCode.ALREADY_LISTED
        assert SelfTransfer().code == ErrorCode.SELF_TRANSFER

    def test_default_message_from_code(self):
        assert NotListed().message == "not listed"

    def test_context_kept(self):
        err = InsufficientBalance("short", sender="SP-BOB", amount=10)
        assert err.context == {"sender": "SP-BOB", "amount": 10}
        assert "102" in repr(err)

    def test_error_for_accepts_plain_int(self):
        err = error_for(106, "bad")
        assert isinstance(err, InvalidParams)
        assert err.message == "bad"


class TestOperationResult:

    def test_success(self):
        result = OperationResult.success(7)
        assert result.ok
        assert result.unwrap() == 7
        assert result.error is None
        assert result.to_dict() == {"ok": True, "value": 7}

    def test_failure_carries_code_and_context(self):
        result = OperationResult.failure(NotListed("gone", asset_id=3))
        assert not result.ok
        assert result.error == ErrorCode.NOT_LISTED
        assert result.context == {"asset_id": 3}
        assert result.to_dict() == {
            "ok": False,
            "error": 105,
            "error_name": "NOT_LISTED",
            "message": "gone",
        }

    def test_unwrap_raises_typed_error(self):
        result = OperationResult.failure(InvalidParams("nope"))
        with pytest.raises(InvalidParams, match="nope"):
            result.unwrap()

    def test_results_are_immutable(self):
        result = OperationResult.success(1)
        with pytest.raises(Exception):
            result.ok = False
