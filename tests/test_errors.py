"""Tests for store error classification and user-facing messages."""

import pytest
from postgrest.exceptions import APIError

from errors import (
    AuthorizationError,
    IdentifierConflict,
    StoreFailure,
    ValidationError,
    classify_store_error,
    describe_failure,
    store_error_message,
)
from fakes import missing_column_error, undefined_column_error, unique_violation_error


@pytest.mark.parametrize(
    "err, expected",
    [
        (unique_violation_error("contractId", 1), StoreFailure.UNIQUE_VIOLATION),
        (RuntimeError('duplicate key value violates unique constraint "loans_pkey"'), StoreFailure.UNIQUE_VIOLATION),
        (missing_column_error("givenAmount", "loans"), StoreFailure.NAMING_MISMATCH),
        (undefined_column_error("contractid", "loans"), StoreFailure.NAMING_MISMATCH),
        (RuntimeError("Could not find the 'paidTotal' column of 'loans'"), StoreFailure.NAMING_MISMATCH),
        (APIError({"code": "42501", "message": "permission denied for table loans"}), StoreFailure.OTHER),
        (ConnectionError("timed out"), StoreFailure.OTHER),
    ],
)
def test_classify_store_error(err, expected):
    assert classify_store_error(err) is expected


def test_store_error_message_prefers_payload():
    assert store_error_message(missing_column_error("x", "loans")).startswith("Could not find the 'x' column")


def test_store_error_message_includes_cause():
    e = IdentifierConflict("No free id.", unique_violation_error("contractId", 1))
    assert store_error_message(e) == 'No free id. (duplicate key value violates unique constraint "loans_pkey")'


class TestDescribeFailure:
    def test_authorization(self):
        assert describe_failure("payment", AuthorizationError("Sign in required.")) == \
            "Not authorized: Sign in required."

    def test_validation(self):
        assert describe_failure("payment", ValidationError("Payment amount must be > 0.")) == \
            "Invalid input: Payment amount must be > 0."

    def test_titles(self):
        assert describe_failure("create", RuntimeError("boom")) == "Save failed: boom"
        assert describe_failure("payment", RuntimeError("boom")) == "Payment failed: boom"
        assert describe_failure("mystery", RuntimeError("boom")) == "Operation failed: boom"
