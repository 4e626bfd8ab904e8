"""Supported tax year set for the remote bracket source.

The set of years is part of the remote source's contract and is supplied
through configuration (``SUPPORTED_TAX_YEARS``); the default mirrors the
years the source currently publishes.

Example:
    >>> years = SupportedTaxYears.from_iterable([2021, 2022])
    >>> years.validate(2022)
    2022
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from src.core.config import DEFAULT_SUPPORTED_TAX_YEARS
from src.tax.errors import InvalidTaxYearError


@dataclass(frozen=True)
class SupportedTaxYears:
    """Immutable, ordered set of tax years with published brackets.

    Attributes:
        years: Supported years in declaration order, deduplicated.
    """

    years: tuple[int, ...] = DEFAULT_SUPPORTED_TAX_YEARS

    def __post_init__(self) -> None:
        if not self.years:
            raise ValueError("At least one supported tax year is required")

    def __contains__(self, year: object) -> bool:
        return isinstance(year, int) and not isinstance(year, bool) and year in self.years

    @classmethod
    def from_iterable(cls, years: Iterable[int]) -> SupportedTaxYears:
        return cls(years=tuple(dict.fromkeys(int(year) for year in years)))

    def validate(self, tax_year: object) -> int:
        """Return the year if supported.

        Raises:
            InvalidTaxYearError: If the year is not in the supported set.
        """
        if tax_year not in self:
            raise InvalidTaxYearError(tax_year, self.years)
        return tax_year  # type: ignore[return-value]


__all__ = ["DEFAULT_SUPPORTED_TAX_YEARS", "SupportedTaxYears"]
