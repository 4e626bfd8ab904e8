"""Tax bracket retrieval and marginal tax calculation."""

from src.tax.calculator import calculate_marginal_tax, format_currency, format_rate
from src.tax.errors import (
    FetchCancelledError,
    InvalidIncomeError,
    InvalidResponseError,
    InvalidTaxYearError,
    NetworkError,
    ServerError,
    TaxApiError,
    TaxErrorKind,
)
from src.tax.fetcher import BracketFetcher, FetcherConfig
from src.tax.models import (
    BracketAllocation,
    BracketTable,
    TaxBracket,
    TaxCalculationRequest,
    TaxCalculationResult,
)
from src.tax.service import TaxCalculatorService
from src.tax.year_config import DEFAULT_SUPPORTED_TAX_YEARS, SupportedTaxYears

__all__ = [
    "BracketAllocation",
    "BracketFetcher",
    "BracketTable",
    "DEFAULT_SUPPORTED_TAX_YEARS",
    "FetchCancelledError",
    "FetcherConfig",
    "InvalidIncomeError",
    "InvalidResponseError",
    "InvalidTaxYearError",
    "NetworkError",
    "ServerError",
    "SupportedTaxYears",
    "TaxApiError",
    "TaxBracket",
    "TaxCalculationRequest",
    "TaxCalculationResult",
    "TaxCalculatorService",
    "TaxErrorKind",
    "calculate_marginal_tax",
    "format_currency",
    "format_rate",
]
