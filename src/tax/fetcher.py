"""Bracket fetcher for the remote tax bracket source.

Retrieves the bracket table for a tax year over HTTP and owns the retry
policy around that call. Uses an explicit attempt loop with exponential
backoff rather than recursion.

Configuration:
    - timeout: 10 seconds per attempt
    - max_retries: 3 retries after the initial attempt (4 attempts total)
    - retry_base_delay: 1 second; retry i waits base * 2**i

Retryable failures are transport errors (including per-attempt timeouts)
and HTTP 5xx / 429 responses. Other HTTP failures raise ServerError at once,
and malformed or undecodable payloads raise InvalidResponseError without
retrying.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
import structlog

from src.tax.errors import (
    FetchCancelledError,
    InvalidResponseError,
    NetworkError,
    ServerError,
)
from src.tax.models import BracketTable
from src.tax.schemas import parse_brackets_body, parse_error_payload
from src.tax.year_config import SupportedTaxYears

if TYPE_CHECKING:
    from src.core.config import Settings

logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[None]]

DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


@dataclass(frozen=True)
class FetcherConfig:
    """Connection and retry policy for the bracket fetcher.

    Attributes:
        base_url: Address of the remote bracket source.
        timeout: Seconds allowed for each individual attempt.
        max_retries: Retries after the initial attempt.
        retry_base_delay: Backoff seed in seconds.
        supported_years: Years the remote source publishes.
    """

    DEFAULT_BASE_URL = "http://localhost:5001"
    DEFAULT_TIMEOUT = 10.0
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_BASE_DELAY = 1.0

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    supported_years: SupportedTaxYears = field(default_factory=SupportedTaxYears)

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_base_delay < 0:
            raise ValueError("retry_base_delay cannot be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> FetcherConfig:
        """Build a config from application settings."""
        return cls(
            base_url=settings.tax_api_base_url,
            timeout=settings.tax_api_timeout,
            max_retries=settings.tax_api_max_retries,
            retry_base_delay=settings.tax_api_retry_base_delay,
            supported_years=SupportedTaxYears.from_iterable(settings.supported_tax_years),
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def bracket_url(self, tax_year: int) -> str:
        return f"{self.base_url.rstrip('/')}/tax-calculator/tax-year/{tax_year}"

    def backoff_delay(self, attempt_index: int) -> float:
        """Delay before retrying after the 0-based ``attempt_index``."""
        return self.retry_base_delay * (2**attempt_index)


class BracketFetcher:
    """Fetches validated bracket tables from the remote source.

    Usage:
        async with BracketFetcher(FetcherConfig(base_url="http://tax")) as fetcher:
            table = await fetcher.fetch_brackets(2022)

    A caller-supplied ``httpx.AsyncClient`` is used as-is and left open;
    otherwise the fetcher creates one and closes it in ``aclose()``.
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config or FetcherConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.config.timeout)
        self._sleep = sleep

    async def __aenter__(self) -> BracketFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_brackets(
        self,
        tax_year: int,
        *,
        deadline: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BracketTable:
        """Fetch and validate the bracket table for ``tax_year``.

        Args:
            tax_year: Year to fetch; must be in the supported set.
            deadline: Optional overall budget in seconds across all attempts
                and backoff waits.
            cancel_event: Optional event; once set, the fetch stops before
                the next attempt or during a backoff wait.

        Returns:
            BracketTable for the year.

        Raises:
            InvalidTaxYearError: Year unsupported; no request is made.
            ServerError: Non-retryable HTTP failure.
            NetworkError: Retry budget exhausted on transient failures.
            InvalidResponseError: Payload malformed or violates invariants.
            FetchCancelledError: Cancelled via ``cancel_event`` or deadline.
        """
        year = self.config.supported_years.validate(tax_year)
        url = self.config.bracket_url(year)
        logger.info("tax_brackets_fetch_started", tax_year=year, url=url)

        response = await self._fetch_with_retry(url, deadline, cancel_event)

        try:
            table = parse_brackets_body(response.content, year)
        except ValueError as exc:
            logger.warning(
                "tax_brackets_invalid_response",
                tax_year=year,
                url=url,
                error=str(exc),
            )
            raise InvalidResponseError(
                f"Invalid tax bracket data for {year}: {exc}",
                status=response.status_code,
            ) from exc

        logger.info("tax_brackets_fetched", tax_year=year, bracket_count=len(table))
        return table

    async def _fetch_with_retry(
        self,
        url: str,
        deadline: float | None,
        cancel_event: asyncio.Event | None,
    ) -> httpx.Response:
        loop = asyncio.get_running_loop()
        deadline_at = None if deadline is None else loop.time() + deadline
        max_attempts = self.config.max_attempts
        last_error: Exception | None = None

        try:
            for attempt in range(max_attempts):
                _raise_if_cancelled(cancel_event)
                timeout = self._attempt_timeout(loop, deadline_at)

                try:
                    return await self._attempt(url, timeout)
                except ServerError as exc:
                    if not exc.retryable:
                        logger.warning(
                            "tax_brackets_fetch_failed",
                            url=url,
                            status=exc.status,
                            code=exc.code,
                            retryable=False,
                        )
                        raise
                    last_error = exc
                except httpx.TransportError as exc:
                    last_error = exc
                except (httpx.RequestError, httpx.InvalidURL) as exc:
                    logger.error(
                        "tax_brackets_fetch_failed",
                        url=url,
                        attempts=attempt + 1,
                        error=str(exc) or type(exc).__name__,
                        retryable=False,
                    )
                    raise NetworkError(
                        f"Tax bracket request could not be sent: {exc}",
                        attempts=attempt + 1,
                    ) from exc

                if deadline_at is not None and loop.time() >= deadline_at:
                    logger.warning("tax_brackets_fetch_deadline_exceeded", url=url, attempts=attempt + 1)
                    raise FetchCancelledError(
                        "Tax bracket fetch exceeded its deadline", code=DEADLINE_EXCEEDED
                    ) from last_error

                if attempt + 1 >= max_attempts:
                    break

                delay = self.config.backoff_delay(attempt)
                logger.warning(
                    "tax_brackets_fetch_retry",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=self.config.max_retries,
                    delay_seconds=delay,
                    error=str(last_error) or type(last_error).__name__,
                )
                await self._wait_backoff(delay, loop, deadline_at, cancel_event)
        except asyncio.CancelledError:
            logger.info("tax_brackets_fetch_cancelled", url=url)
            raise

        logger.error(
            "tax_brackets_fetch_failed",
            url=url,
            attempts=max_attempts,
            error=str(last_error) or type(last_error).__name__,
            retryable=True,
        )
        raise _exhausted(last_error, max_attempts) from last_error

    async def _attempt(self, url: str, timeout: float) -> httpx.Response:
        try:
            response = await self._client.get(
                url,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        except httpx.DecodingError as exc:
            logger.warning("tax_brackets_invalid_response", url=url, error=str(exc))
            raise InvalidResponseError(f"Could not decode tax bracket response: {exc}") from exc
        if response.is_success:
            return response

        payload = parse_error_payload(response.content)
        status = response.status_code
        raise ServerError(
            payload.message or f"HTTP {status}: {response.reason_phrase}",
            status=status,
            code=payload.code,
            retryable=status >= 500 or status == 429,
        )

    def _attempt_timeout(
        self, loop: asyncio.AbstractEventLoop, deadline_at: float | None
    ) -> float:
        if deadline_at is None:
            return self.config.timeout
        remaining = deadline_at - loop.time()
        if remaining <= 0:
            raise FetchCancelledError(
                "Tax bracket fetch exceeded its deadline", code=DEADLINE_EXCEEDED
            )
        return min(self.config.timeout, remaining)

    async def _wait_backoff(
        self,
        delay: float,
        loop: asyncio.AbstractEventLoop,
        deadline_at: float | None,
        cancel_event: asyncio.Event | None,
    ) -> None:
        if deadline_at is not None and loop.time() + delay >= deadline_at:
            raise FetchCancelledError(
                "Tax bracket fetch deadline would elapse during backoff",
                code=DEADLINE_EXCEEDED,
            )

        if cancel_event is None:
            await self._sleep(delay)
            return

        # Backoff ends early once the cancel event is set.
        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        _raise_if_cancelled(cancel_event)
        if sleeper in done:
            sleeper.result()


def _raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelledError()


def _exhausted(last_error: Exception | None, attempts: int) -> NetworkError:
    """Build the error surfaced once the retry budget is spent."""
    if isinstance(last_error, ServerError):
        return NetworkError(
            f"Tax bracket request failed after {attempts} attempts: {last_error.message}",
            attempts=attempts,
            status=last_error.status,
            code=last_error.server_code,
        )
    if isinstance(last_error, httpx.TimeoutException):
        reason = "request timed out"
    else:
        reason = str(last_error) or "network error occurred"
    return NetworkError(
        f"Tax bracket request failed after {attempts} attempts: {reason}",
        attempts=attempts,
    )


__all__ = ["BracketFetcher", "DEADLINE_EXCEEDED", "FetcherConfig"]
