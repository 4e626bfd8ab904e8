"""Sentry error tracking integration."""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from src.core.config import settings
from src.tax.errors import TaxApiError, TaxErrorKind

# Caller input errors are expected outcomes, not incidents.
IGNORED_ERROR_KINDS = frozenset(
    {TaxErrorKind.INVALID_TAX_YEAR, TaxErrorKind.INVALID_INCOME}
)


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """Drop validation errors and tag tax engine errors with their kind."""
    exc_info = hint.get("exc_info")
    if not exc_info:
        return event

    exc = exc_info[1]
    if isinstance(exc, TaxApiError):
        if exc.kind in IGNORED_ERROR_KINDS:
            return None
        tags = event.setdefault("tags", {})
        tags["tax_error_kind"] = exc.kind.value
        tags["tax_error_code"] = exc.code
    return event


def init_sentry() -> None:
    """Initialize Sentry error tracking if DSN is configured.

    Integrates with FastAPI and Starlette for automatic error capture.
    Only captures 5xx errors and samples 10% of traces for performance.
    """
    if not settings.sentry_dsn:
        return  # Skip gracefully if no DSN

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=_before_send,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )
