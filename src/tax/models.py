"""Value types for bracket tables and tax calculation results.

All monetary values and rates are Decimal. Every type here is a frozen
dataclass created fresh per request and never mutated afterwards.

Example:
    >>> table = BracketTable.from_dicts(
    ...     [{"min": 0, "max": 50197, "rate": 0.15}, {"min": 50197, "rate": 0.205}]
    ... )
    >>> table.upper_bound is None
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any


ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: object) -> Decimal:
    """Convert a JSON-ish number to Decimal without binary float drift.

    Floats go through their shortest repr (0.205 -> Decimal("0.205")).

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Expected a number, got {value!r}") from exc
    else:
        raise ValueError(f"Expected a number, got {value!r}")

    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


@dataclass(frozen=True)
class TaxBracket:
    """A contiguous income range taxed at a flat marginal rate.

    Attributes:
        lower: Inclusive lower bound of the range (wire name ``min``).
        upper: Upper bound, or None for the open-ended top bracket (``max``).
        rate: Marginal rate as a fraction in [0, 1].
    """

    lower: Decimal
    upper: Decimal | None
    rate: Decimal

    def __post_init__(self) -> None:
        if self.lower < ZERO:
            raise ValueError(f"Bracket lower bound must be >= 0, got {self.lower}")
        if self.upper is not None and self.upper <= self.lower:
            raise ValueError(
                f"Bracket upper bound {self.upper} must exceed lower bound {self.lower}"
            )
        if not ZERO <= self.rate <= ONE:
            raise ValueError(f"Bracket rate must be within [0, 1], got {self.rate}")

    @property
    def is_unbounded(self) -> bool:
        return self.upper is None

    @property
    def width(self) -> Decimal | None:
        """Size of the range, or None when unbounded."""
        if self.upper is None:
            return None
        return self.upper - self.lower

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaxBracket:
        """Build a bracket from the wire shape ``{min, max?, rate}``."""
        upper = data.get("max")
        return cls(
            lower=to_decimal(data["min"]),
            upper=None if upper is None else to_decimal(upper),
            rate=to_decimal(data["rate"]),
        )

    def to_dict(self) -> dict[str, str]:
        payload = {"min": str(self.lower), "rate": str(self.rate)}
        if self.upper is not None:
            payload["max"] = str(self.upper)
        return payload


@dataclass(frozen=True)
class BracketTable:
    """Ordered, contiguous sequence of brackets for one tax year.

    Invariants (checked on construction):
        - At least one bracket.
        - Ascending by lower bound and contiguous:
          ``brackets[i].upper == brackets[i + 1].lower``.
        - At most one unbounded bracket, and only in last position.
    """

    brackets: tuple[TaxBracket, ...]
    tax_year: int | None = None

    def __post_init__(self) -> None:
        if not self.brackets:
            raise ValueError("Bracket table must contain at least one bracket")

        for index, (current, following) in enumerate(
            zip(self.brackets, self.brackets[1:])
        ):
            if current.upper is None:
                raise ValueError(
                    f"Unbounded bracket at position {index} must be the last bracket"
                )
            if current.upper != following.lower:
                raise ValueError(
                    f"Brackets are not contiguous at position {index}: "
                    f"{current.upper} != {following.lower}"
                )

    def __iter__(self) -> Iterator[TaxBracket]:
        return iter(self.brackets)

    def __len__(self) -> int:
        return len(self.brackets)

    def __getitem__(self, index: int) -> TaxBracket:
        return self.brackets[index]

    @property
    def upper_bound(self) -> Decimal | None:
        """Upper bound of the last bracket, None when the table is open-ended."""
        return self.brackets[-1].upper

    @property
    def capacity(self) -> Decimal | None:
        """Total income the table can allocate, None when open-ended."""
        if self.upper_bound is None:
            return None
        return self.upper_bound - self.brackets[0].lower

    def covers(self, income: Decimal) -> bool:
        """Whether every unit of ``income`` falls into some bracket."""
        capacity = self.capacity
        return capacity is None or income <= capacity

    @classmethod
    def from_dicts(
        cls, items: Iterable[Mapping[str, Any]], tax_year: int | None = None
    ) -> BracketTable:
        return cls(
            brackets=tuple(TaxBracket.from_dict(item) for item in items),
            tax_year=tax_year,
        )

    def to_payload(self) -> dict[str, list[dict[str, str]]]:
        """Render the table in the remote source's wire shape."""
        return {"tax_brackets": [bracket.to_dict() for bracket in self.brackets]}


@dataclass(frozen=True)
class TaxCalculationRequest:
    """Caller-supplied calculation input."""

    annual_income: Decimal
    tax_year: int


@dataclass(frozen=True)
class BracketAllocation:
    """Slice of income taxed within a single bracket."""

    bracket: TaxBracket
    taxable_amount: Decimal
    tax_amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "bracket": self.bracket.to_dict(),
            "taxable_amount": str(self.taxable_amount),
            "tax_amount": str(self.tax_amount),
        }


@dataclass(frozen=True)
class TaxCalculationResult:
    """Outcome of a marginal tax calculation.

    Values are unrounded; formatting happens at presentation time.

    Attributes:
        total_tax: Sum of tax across all allocated brackets.
        effective_rate: total_tax / income, or 0 for zero income.
        per_bracket: Allocations with nonzero taxable amount, ascending.
    """

    total_tax: Decimal
    effective_rate: Decimal
    per_bracket: tuple[BracketAllocation, ...] = field(default_factory=tuple)

    @property
    def marginal_rate(self) -> Decimal | None:
        """Rate of the highest bracket the income reached."""
        if not self.per_bracket:
            return None
        return self.per_bracket[-1].bracket.rate

    @property
    def taxable_total(self) -> Decimal:
        return sum((item.taxable_amount for item in self.per_bracket), ZERO)

    def to_dict(self) -> dict[str, Any]:
        marginal_rate = self.marginal_rate
        return {
            "total_tax": str(self.total_tax),
            "effective_rate": str(self.effective_rate),
            "marginal_rate": None if marginal_rate is None else str(marginal_rate),
            "per_bracket": [item.to_dict() for item in self.per_bracket],
        }


__all__ = [
    "BracketAllocation",
    "BracketTable",
    "TaxBracket",
    "TaxCalculationRequest",
    "TaxCalculationResult",
    "to_decimal",
]
