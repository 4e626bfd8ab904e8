"""Tests for bracket table value types and wire parsing."""

from decimal import Decimal

import pytest

from src.tax.models import BracketTable, TaxBracket, to_decimal
from src.tax.schemas import parse_brackets_body, parse_error_payload


class TestTaxBracket:
    """Bracket-level invariants."""

    def test_from_dict_converts_floats_exactly(self) -> None:
        bracket = TaxBracket.from_dict({"min": 50197, "max": 100392, "rate": 0.205})

        assert bracket.lower == Decimal("50197")
        assert bracket.upper == Decimal("100392")
        assert bracket.rate == Decimal("0.205")

    def test_missing_max_is_unbounded(self) -> None:
        bracket = TaxBracket.from_dict({"min": 100392, "rate": 0.33})

        assert bracket.is_unbounded
        assert bracket.width is None

    def test_negative_min_rejected(self) -> None:
        with pytest.raises(ValueError, match="lower bound"):
            TaxBracket(lower=Decimal("-1"), upper=Decimal("10"), rate=Decimal("0.1"))

    def test_max_must_exceed_min(self) -> None:
        with pytest.raises(ValueError, match="must exceed"):
            TaxBracket(lower=Decimal("10"), upper=Decimal("10"), rate=Decimal("0.1"))

    @pytest.mark.parametrize("rate", ["-0.01", "1.01"])
    def test_rate_outside_unit_interval_rejected(self, rate: str) -> None:
        with pytest.raises(ValueError, match="rate"):
            TaxBracket(lower=Decimal("0"), upper=None, rate=Decimal(rate))

    def test_rate_bounds_are_inclusive(self) -> None:
        TaxBracket(lower=Decimal("0"), upper=Decimal("1"), rate=Decimal("0"))
        TaxBracket(lower=Decimal("0"), upper=None, rate=Decimal("1"))


class TestBracketTable:
    """Table-level invariants."""

    def test_valid_table(self, sample_table: BracketTable) -> None:
        assert len(sample_table) == 3
        assert sample_table.tax_year == 2022
        assert sample_table.upper_bound is None
        assert sample_table.covers(Decimal("10000000"))

    def test_empty_table_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            BracketTable(brackets=())

    def test_gap_between_brackets_rejected(self) -> None:
        with pytest.raises(ValueError, match="not contiguous"):
            BracketTable.from_dicts(
                [
                    {"min": 0, "max": 10000, "rate": 0.1},
                    {"min": 10001, "rate": 0.2},
                ]
            )

    def test_overlapping_brackets_rejected(self) -> None:
        with pytest.raises(ValueError, match="not contiguous"):
            BracketTable.from_dicts(
                [
                    {"min": 0, "max": 10000, "rate": 0.1},
                    {"min": 9000, "rate": 0.2},
                ]
            )

    def test_unbounded_bracket_not_last_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be the last"):
            BracketTable.from_dicts(
                [
                    {"min": 0, "rate": 0.1},
                    {"min": 10000, "max": 20000, "rate": 0.2},
                ]
            )

    def test_finite_table_capacity(self) -> None:
        table = BracketTable.from_dicts(
            [
                {"min": 0, "max": 10000, "rate": 0.1},
                {"min": 10000, "max": 20000, "rate": 0.2},
            ]
        )

        assert table.capacity == Decimal("20000")
        assert table.covers(Decimal("20000"))
        assert not table.covers(Decimal("20000.01"))

    def test_table_is_immutable(self, sample_table: BracketTable) -> None:
        with pytest.raises(AttributeError):
            sample_table.brackets = ()  # type: ignore[misc]

    def test_to_payload_uses_wire_names(self, sample_table: BracketTable) -> None:
        payload = sample_table.to_payload()

        assert payload["tax_brackets"][0] == {"min": "0", "max": "50197", "rate": "0.15"}
        assert "max" not in payload["tax_brackets"][-1]


class TestToDecimal:
    def test_float_uses_shortest_repr(self) -> None:
        assert to_decimal(0.205) == Decimal("0.205")

    @pytest.mark.parametrize("value", [True, None, [], "nan", "inf"])
    def test_rejects_non_numbers(self, value: object) -> None:
        with pytest.raises(ValueError):
            to_decimal(value)


class TestParseBracketsBody:
    """Decoding of the remote source's success body."""

    def test_parses_valid_body(self) -> None:
        body = b'{"tax_brackets": [{"min": 0, "max": 50197, "rate": 0.15}, {"min": 50197, "rate": 0.205}]}'

        table = parse_brackets_body(body, 2021)

        assert table.tax_year == 2021
        assert table[1].rate == Decimal("0.205")

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"[]",
            b'{"brackets": []}',
            b'{"tax_brackets": []}',
            b'{"tax_brackets": [{"max": 10, "rate": 0.1}]}',
            b'{"tax_brackets": [{"min": 0, "rate": "abc"}]}',
            b'{"tax_brackets": [{"min": 0, "max": 10, "rate": 0.1}, {"min": 11, "rate": 0.2}]}',
        ],
    )
    def test_rejects_malformed_body(self, body: bytes) -> None:
        with pytest.raises(ValueError):
            parse_brackets_body(body, 2021)


class TestParseErrorPayload:
    """Best-effort decoding of error bodies."""

    def test_reads_message_and_code(self) -> None:
        payload = parse_error_payload(b'{"message": "Database down", "code": "DB_DOWN"}')

        assert payload.message == "Database down"
        assert payload.code == "DB_DOWN"

    @pytest.mark.parametrize("body", [b"", b"<html>502</html>", b'"text"', b"[1, 2]"])
    def test_unreadable_body_is_empty(self, body: bytes) -> None:
        payload = parse_error_payload(body)

        assert payload.message is None
        assert payload.code is None

    def test_ignores_non_string_fields(self) -> None:
        payload = parse_error_payload(b'{"message": 42, "code": null}')

        assert payload.message is None
        assert payload.code is None
