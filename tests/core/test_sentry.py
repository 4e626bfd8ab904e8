"""Tests for Sentry event filtering."""

import sys

from src.core.sentry import _before_send
from src.tax.errors import InvalidIncomeError, InvalidTaxYearError, NetworkError


def _hint_for(exc: Exception) -> dict:
    try:
        raise exc
    except Exception:
        return {"exc_info": sys.exc_info()}


def test_validation_errors_are_dropped() -> None:
    """Caller input errors never reach Sentry."""
    assert _before_send({}, _hint_for(InvalidTaxYearError(2023, (2022,)))) is None
    assert _before_send({}, _hint_for(InvalidIncomeError())) is None


def test_tax_errors_are_tagged_with_kind() -> None:
    event = _before_send({}, _hint_for(NetworkError("down", attempts=4, code="BUSY")))

    assert event == {"tags": {"tax_error_kind": "NETWORK_ERROR", "tax_error_code": "BUSY"}}


def test_other_events_pass_through() -> None:
    event = {"message": "hello"}

    assert _before_send(event, {}) is event
    assert _before_send(event, _hint_for(RuntimeError("boom"))) is event
