"""Tax calculation service: fetch brackets, then compute marginal tax.

Each call is an independent unit of work. The only state held is the
fetcher (and optional cache), both safe to share across concurrent calls.
"""

from __future__ import annotations

import asyncio

from src.core.logging import get_logger, tax_year_ctx
from src.tax.cache import RedisBracketCache
from src.tax.calculator import calculate_marginal_tax, coerce_income
from src.tax.errors import InvalidResponseError, TaxApiError
from src.tax.fetcher import BracketFetcher
from src.tax.models import BracketTable, TaxCalculationRequest, TaxCalculationResult

logger = get_logger(__name__)


class TaxCalculatorService:
    """Entry point for callers that want brackets or a tax calculation.

    Usage:
        service = TaxCalculatorService(BracketFetcher(config))
        result = await service.calculate(
            TaxCalculationRequest(annual_income=Decimal("100000"), tax_year=2022)
        )
    """

    def __init__(
        self,
        fetcher: BracketFetcher,
        cache: RedisBracketCache | None = None,
    ):
        self.fetcher = fetcher
        self.cache = cache

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    async def fetch_brackets(
        self,
        tax_year: int,
        *,
        deadline: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BracketTable:
        """Return the bracket table for a year, consulting the cache first.

        Raises:
            TaxApiError: Any failure from the fetcher.
        """
        year = self.fetcher.config.supported_years.validate(tax_year)
        token = tax_year_ctx.set(year)
        try:
            if self.cache is not None:
                cached = await self.cache.get(year)
                if cached is not None:
                    logger.debug("tax_brackets_cache_hit", tax_year=year)
                    return cached

            table = await self.fetcher.fetch_brackets(
                year, deadline=deadline, cancel_event=cancel_event
            )

            if self.cache is not None:
                await self.cache.set(table)
            return table
        finally:
            tax_year_ctx.reset(token)

    async def calculate(
        self,
        request: TaxCalculationRequest,
        *,
        deadline: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TaxCalculationResult:
        """Fetch brackets for the request's year and compute the tax.

        Income and year are validated before any network call. The
        calculation only runs on a fully fetched, validated table.

        Raises:
            InvalidIncomeError: Income negative or not a number.
            InvalidTaxYearError: Year not supported.
            InvalidResponseError: Table malformed or does not cover income.
            NetworkError, ServerError, FetchCancelledError: From the fetcher.
        """
        try:
            income = coerce_income(request.annual_income)
            self.fetcher.config.supported_years.validate(request.tax_year)
            table = await self.fetch_brackets(
                request.tax_year, deadline=deadline, cancel_event=cancel_event
            )

            if not table.covers(income):
                raise InvalidResponseError(
                    f"Tax brackets for {request.tax_year} end at {table.upper_bound} "
                    f"and do not cover income {income}"
                )

            result = calculate_marginal_tax(income, table)
        except TaxApiError as exc:
            logger.warning(
                "tax_api_error",
                tax_year=request.tax_year,
                kind=exc.kind.value,
                code=exc.code,
                status=exc.status,
                retryable=exc.retryable,
            )
            raise

        logger.info(
            "tax_calculation_completed",
            tax_year=request.tax_year,
            total_tax=result.total_tax,
            effective_rate=result.effective_rate,
            bracket_count=len(result.per_bracket),
        )
        return result


__all__ = ["TaxCalculatorService"]
