"""Tests for pp_common.errors and pp_common.response."""

from types import SimpleNamespace

import pytest

from src.pp_common.errors import (
    AppError,
    CashoutUnavailableError,
    EventAlreadySettledError,
    EventNotOpenError,
    ExternalUnavailableError,
    InsufficientBalanceError,
    InvalidOutcomeError,
    RateLimitError,
    ReservedTransactionTypeError,
    SettlementTimeoutError,
)
from src.pp_common.response import error_response, respond, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=1001, message="Username taken", http_status=409)
        assert err.http_status == 409

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    def test_insufficient_balance_keeps_amounts(self) -> None:
        err = InsufficientBalanceError(required=65, available=30)
        assert err.code == 2001
        assert err.http_status == 422
        assert (err.required, err.available) == (65, 30)
        assert "65" in err.message and "30" in err.message

    @pytest.mark.parametrize(
        ("err", "code", "status"),
        [
            (ReservedTransactionTypeError("PURCHASE"), 2004, 403),
            (EventNotOpenError("evt-1", "LOCKED"), 3002, 409),
            (EventAlreadySettledError("evt-1", "SETTLED"), 3004, 409),
            (SettlementTimeoutError("evt-1", 30), 3007, 503),
            (CashoutUnavailableError("odds stale"), 4005, 409),
            (ExternalUnavailableError("HTTP 503"), 6001, 502),
            (RateLimitError(), 9001, 429),
        ],
    )
    def test_codes_and_statuses(self, err: AppError, code: int, status: int) -> None:
        assert err.code == code
        assert err.http_status == status

    def test_invalid_outcome_lists_choices(self) -> None:
        err = InvalidOutcomeError("Spurs", ["Arsenal", "Chelsea"])
        assert "Spurs" in err.message
        assert "Arsenal" in err.message


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "abc"})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": "abc"}

    def test_error(self) -> None:
        resp = error_response(2001, "Insufficient balance")
        assert resp.code == 2001
        assert resp.data is None

    def test_serialization_keys(self) -> None:
        d = success_response({"stake": 5}).model_dump()
        assert set(d) == {"code", "message", "data", "timestamp", "request_id"}

    def test_respond_uses_request_id_and_dumps_models(self) -> None:
        request = SimpleNamespace(state=SimpleNamespace(request_id="req_fixed"))
        resp = respond(request, error_response(1, "x"), "done")  # type: ignore[arg-type]
        assert resp.request_id == "req_fixed"
        assert resp.message == "done"
        assert resp.data["code"] == 1

    def test_respond_without_request_id(self) -> None:
        request = SimpleNamespace(state=SimpleNamespace())
        resp = respond(request, {"a": 1})  # type: ignore[arg-type]
        assert resp.request_id.startswith("req_")
