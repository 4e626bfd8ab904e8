"""Error taxonomy for bracket retrieval and tax calculation.

Every failure surfaced by the tax engine is a ``TaxApiError`` subclass with
a closed ``TaxErrorKind``. Callers switch over ``error.kind`` (or the stable
``error.code``) instead of inspecting message strings.

Fields carried by every error:
    - kind: Closed enumeration of failure categories
    - message: Human-readable description
    - status: HTTP status when the failure came from the remote source
    - code: Server-supplied code when present, else the kind's stable code
    - server_code: The server-supplied code alone, None when absent
    - retryable: Whether the failure was classified as transient
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class TaxErrorKind(str, Enum):
    """Closed set of failure categories."""

    INVALID_TAX_YEAR = "INVALID_TAX_YEAR"
    INVALID_INCOME = "INVALID_INCOME"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    SERVER_ERROR = "SERVER_ERROR"
    CANCELLED = "CANCELLED"


class TaxApiError(Exception):
    """Base class for all tax engine failures."""

    kind: TaxErrorKind = TaxErrorKind.SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        retryable: bool = False,
    ):
        self.message = message
        self.status = status
        self.server_code = code
        self.code = code or self.kind.value
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses and logs."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, status={self.status!r}, "
            f"code={self.code!r}, retryable={self.retryable!r})"
        )


class InvalidTaxYearError(TaxApiError):
    """Requested tax year is not in the supported set."""

    kind = TaxErrorKind.INVALID_TAX_YEAR

    def __init__(self, tax_year: object, supported_years: tuple[int, ...]):
        self.tax_year = tax_year
        self.supported_years = supported_years
        years = ", ".join(str(year) for year in supported_years)
        super().__init__(
            f"Tax year {tax_year} is not supported. Supported years: {years}",
            status=400,
        )


class InvalidIncomeError(TaxApiError):
    """Annual income is negative or not a number."""

    kind = TaxErrorKind.INVALID_INCOME

    def __init__(self, message: str = "Annual income cannot be negative"):
        super().__init__(message, status=400)


class NetworkError(TaxApiError):
    """Transient failures persisted past the retry budget."""

    kind = TaxErrorKind.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        status: int | None = None,
        code: str | None = None,
    ):
        self.attempts = attempts
        super().__init__(message, status=status, code=code, retryable=True)


class InvalidResponseError(TaxApiError):
    """Remote payload is malformed or violates bracket table invariants."""

    kind = TaxErrorKind.INVALID_RESPONSE

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message, status=status)


class ServerError(TaxApiError):
    """Non-success HTTP outcome reported by the remote source."""

    kind = TaxErrorKind.SERVER_ERROR


class FetchCancelledError(TaxApiError):
    """Fetch stopped by the caller or by the overall deadline."""

    kind = TaxErrorKind.CANCELLED

    def __init__(self, message: str = "Tax bracket fetch was cancelled", *, code: str | None = None):
        super().__init__(message, code=code)


__all__ = [
    "FetchCancelledError",
    "InvalidIncomeError",
    "InvalidResponseError",
    "InvalidTaxYearError",
    "NetworkError",
    "ServerError",
    "TaxApiError",
    "TaxErrorKind",
]
