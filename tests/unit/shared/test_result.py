"""Unit tests for Result."""

from __future__ import annotations

import pytest

from modules.orders.exceptions import PersistenceFailure
from shared.domain.result import Result

pytestmark = pytest.mark.unit


def test_ok_result():
    result = Result.ok("ORD-2026-001")

    assert result.is_ok is True
    assert result.is_failure is False
    assert result.value == "ORD-2026-001"
    assert result.unwrap_or("fallback") == "ORD-2026-001"


def test_failed_result():
    failure = PersistenceFailure("create_order", "connection refused")
    result = Result.fail(failure)

    assert result.is_ok is False
    assert result.is_failure is True
    assert result.error is failure
    assert result.unwrap_or("fallback") == "fallback"


def test_ok_with_none_value_is_still_ok():
    assert Result.ok(None).is_ok is True


def test_fail_requires_an_error():
    with pytest.raises(ValueError):
        Result.fail(None)


@pytest.mark.parametrize(
    ("failure", "expected"),
    [
        (PersistenceFailure("fetch_order", "timed out"), "fetch_order failed: timed out"),
        (
            PersistenceFailure("create_order", "Order number already exists.", 409),
            "create_order failed (409): Order number already exists.",
        ),
    ],
)
def test_persistence_failure_str(failure, expected):
    assert str(failure) == expected
