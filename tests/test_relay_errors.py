"""Unit tests for vendor failure classification."""

import pytest

from relay_errors import (
    AuthenticationError,
    InsufficientFundsError,
    NonceConflictError,
    NotFoundError,
    ProviderError,
    RelayError,
    RelayTimeoutError,
    TransientError,
    classify_failure_text,
    classify_provider_error,
)
from relay_status import RelayStatus


class TestClassifyFailureText:
    """The signature table maps vendor text to error kinds."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Transaction not found: abc", NotFoundError),
            ("insufficient funds for gas * price + value", InsufficientFundsError),
            ("nonce too low", NonceConflictError),
            ("Unauthorized", AuthenticationError),
            ("HTTP 401: bad token", AuthenticationError),
            ("HTTP 500: internal error", TransientError),
        ],
    )
    def test_known_signatures(self, text, expected):
        """Recognized substrings map to their error class."""
        assert classify_failure_text(text) is expected

    def test_empty_text_is_transient(self):
        """Missing text is treated as transient."""
        assert classify_failure_text("") is TransientError
        assert classify_failure_text(None) is TransientError

    def test_first_match_wins(self):
        """Table order decides when several signatures match."""
        assert classify_failure_text("nonce not found") is NotFoundError


class TestClassifyProviderError:
    """ProviderError -> RelayError instances."""

    def test_keeps_vendor_text(self):
        """The vendor text stays in the message for diagnostics."""
        err = classify_provider_error(ProviderError("HTTP 400: insufficient funds"), "submit")
        assert isinstance(err, InsufficientFundsError)
        assert isinstance(err, RelayError)
        assert "insufficient funds" in str(err)
        assert "submit" in str(err)


class TestRelayTimeoutError:
    """Timeout carries the last status."""

    def test_is_builtin_timeout(self):
        """Callers can catch it as TimeoutError."""
        err = RelayTimeoutError("tx-1", RelayStatus.PENDING, 500)
        assert isinstance(err, TimeoutError)
        assert err.last_status is RelayStatus.PENDING
        assert "pending" in str(err)
