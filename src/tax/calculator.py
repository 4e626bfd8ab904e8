"""Marginal tax calculation over a bracket table.

This module provides pure functions with no I/O:
- Marginal tax liability walked bracket by bracket
- Effective rate derivation
- Display formatting for amounts and rates (presentation only)

All monetary values use Decimal. Amounts are never rounded during the
calculation; rounding happens only in the formatting helpers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from src.tax.errors import InvalidIncomeError, InvalidResponseError
from src.tax.models import (
    ZERO,
    BracketAllocation,
    BracketTable,
    TaxCalculationResult,
    to_decimal,
)


CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def coerce_income(annual_income: Decimal | int | float | str) -> Decimal:
    """Convert caller input to a non-negative Decimal income.

    Raises:
        InvalidIncomeError: If the value is not a finite number or is negative.
    """
    try:
        income = to_decimal(annual_income)
    except ValueError as exc:
        raise InvalidIncomeError(f"Annual income must be a number, got {annual_income!r}") from exc
    if income < ZERO:
        raise InvalidIncomeError()
    return income


def calculate_marginal_tax(
    annual_income: Decimal | int | float | str, brackets: BracketTable
) -> TaxCalculationResult:
    """Calculate tax by applying each bracket's rate to its slice of income.

    Args:
        annual_income: Income to tax; must be >= 0.
        brackets: Validated bracket table, ascending and contiguous.

    Returns:
        TaxCalculationResult with total tax, effective rate, and one
        allocation per bracket that received income.

    Raises:
        InvalidIncomeError: If income is negative (checked before brackets).
        InvalidResponseError: If the table's finite top bound is below the
            income, which would otherwise drop income silently.

    Example:
        >>> table = BracketTable.from_dicts([{"min": 0, "rate": "0.15"}])
        >>> calculate_marginal_tax(Decimal("50000"), table).total_tax
        Decimal('7500.00')
    """
    income = coerce_income(annual_income)

    if not brackets.covers(income):
        raise InvalidResponseError(
            f"Bracket table ends at {brackets.upper_bound} and does not cover income {income}"
        )

    remaining_income = income
    total_tax = ZERO
    per_bracket: list[BracketAllocation] = []

    for bracket in brackets:
        if remaining_income <= ZERO:
            break

        width = bracket.width
        if width is None:
            # Top bracket - no limit
            taxable_in_bracket = remaining_income
        else:
            taxable_in_bracket = min(remaining_income, width)

        if taxable_in_bracket > ZERO:
            tax_in_bracket = taxable_in_bracket * bracket.rate
            total_tax += tax_in_bracket
            remaining_income -= taxable_in_bracket
            per_bracket.append(
                BracketAllocation(
                    bracket=bracket,
                    taxable_amount=taxable_in_bracket,
                    tax_amount=tax_in_bracket,
                )
            )

    if income > ZERO:
        effective_rate = total_tax / income
    else:
        effective_rate = ZERO

    return TaxCalculationResult(
        total_tax=total_tax,
        effective_rate=effective_rate,
        per_bracket=tuple(per_bracket),
    )


# =============================================================================
# Presentation helpers
# =============================================================================


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount to cents with thousands separators.

    >>> format_currency(Decimal("17739.165"))
    '$17,739.17'
    """
    rounded = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < ZERO else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def format_rate(rate: Decimal) -> str:
    """Format a fractional rate as a percentage with two decimals.

    >>> format_rate(Decimal("0.17739165"))
    '17.74%'
    """
    percent = (rate * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{percent}%"


__all__ = [
    "calculate_marginal_tax",
    "coerce_income",
    "format_currency",
    "format_rate",
]
