"""Wire models for the remote tax bracket source."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.tax.models import BracketTable, TaxBracket, to_decimal


class TaxBracketPayload(BaseModel):
    """Single bracket as published by the remote source."""

    min: Decimal
    max: Decimal | None = None
    rate: Decimal

    @field_validator("min", "max", "rate", mode="before")
    @classmethod
    def parse_number(cls, value: object) -> Decimal | None:
        if value is None:
            return None
        return to_decimal(value)


class TaxBracketsResponse(BaseModel):
    """Success body: ``{"tax_brackets": [...]}``."""

    tax_brackets: list[TaxBracketPayload] = Field(min_length=1)

    def to_table(self, tax_year: int | None = None) -> BracketTable:
        """Convert to a validated BracketTable.

        Raises:
            ValueError: If the brackets violate table invariants.
        """
        return BracketTable(
            brackets=tuple(
                TaxBracket(lower=item.min, upper=item.max, rate=item.rate)
                for item in self.tax_brackets
            ),
            tax_year=tax_year,
        )


class ErrorPayload(BaseModel):
    """Best-effort error body: ``{"message"?, "code"?}``."""

    message: str | None = None
    code: str | None = None


def parse_error_payload(body: bytes) -> ErrorPayload:
    """Parse an error body, treating anything unreadable as empty."""
    try:
        decoded: Any = orjson.loads(body) if body else None
    except orjson.JSONDecodeError:
        return ErrorPayload()
    if not isinstance(decoded, dict):
        return ErrorPayload()

    message = decoded.get("message")
    code = decoded.get("code")
    return ErrorPayload(
        message=message if isinstance(message, str) and message else None,
        code=code if isinstance(code, str) and code else None,
    )


def parse_brackets_body(body: bytes, tax_year: int | None = None) -> BracketTable:
    """Decode and validate a success body into a BracketTable.

    Raises:
        ValueError: If the body is not JSON, fails the schema, or violates
            table invariants.
    """
    try:
        decoded = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise ValueError(f"Response body is not valid JSON: {exc}") from exc

    try:
        response = TaxBracketsResponse.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError(
            f"Response body does not match bracket schema: {exc.error_count()} error(s)"
        ) from exc

    return response.to_table(tax_year)


__all__ = [
    "ErrorPayload",
    "TaxBracketPayload",
    "TaxBracketsResponse",
    "parse_brackets_body",
    "parse_error_payload",
]
