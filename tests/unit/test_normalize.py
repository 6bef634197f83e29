from decimal import Decimal

import pytest

from normalize import coerce_days, load_symbol_names, parse_decimal, to_row


@pytest.mark.parametrize("raw, expected", [
    ("1.234,56", Decimal("1234.56")),
    ("1,234.56", Decimal("1234.56")),
    ("12,5", Decimal("12.5")),
    ("-0.50", Decimal("-0.50")),
    ("3,20%", Decimal("3.20")),
    ("1.234.567", Decimal("1234567")),
    ("1,234,567", Decimal("1234567")),
    (42, Decimal("42")),
    (2.5, Decimal("2.5")),
])
def test_parse_decimal_handles_both_separators(raw, expected):
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "n/a", float("nan"), True])
def test_parse_decimal_rejects_garbage(raw):
    assert parse_decimal(raw) is None


def test_decimal_comma_compares_numerically():
    # "9,5" > "10,0" as strings; normalized values compare correctly
    assert parse_decimal("9,5") < parse_decimal("10,0")


@pytest.mark.parametrize("raw, expected", [
    ("7", 7), (3, 3), ("abc", 1), (None, 1), ("0", 1), ("-4", 1), ("2.5", 1), (" 15 ", 15),
])
def test_coerce_days(raw, expected):
    assert coerce_days(raw) == expected


def test_to_row_prefers_lookup_name():
    item = {"COD_SIMB": " BNC ", "DESC_SIMB": "BANCO NAC. CRED.", "PRECIO": "1,10", "ICON": ""}
    row = to_row(item, {"BNC": "Banco Nacional de Crédito"})
    assert row["symbol"] == "BNC"
    assert row["name"] == "Banco Nacional de Crédito"
    assert row["price"] == Decimal("1.10")
    assert row["icon_url"] is None
    assert row["volume"] is None


def test_to_row_falls_back_to_source_name():
    row = to_row({"COD_SIMB": "ABC", "DESC_SIMB": "Alfa", "PRECIO": "2"}, {})
    assert row["name"] == "Alfa"


def test_load_symbol_names(tmp_path):
    path = tmp_path / "names.json"
    path.write_text('{"ABC": "Alfa Beta"}', encoding="utf-8")
    assert load_symbol_names(str(path)) == {"ABC": "Alfa Beta"}
    assert load_symbol_names("") == {}


def test_load_symbol_names_rejects_lists(tmp_path):
    path = tmp_path / "names.json"
    path.write_text('["ABC"]', encoding="utf-8")
    with pytest.raises(ValueError):
        load_symbol_names(str(path))


@pytest.mark.parametrize("raw, expected", [
    ("1.234", Decimal("1234")),
    ("1.234.567", Decimal("1234567")),
    ("1.234,50", Decimal("1234.50")),
    ("987", Decimal("987")),
])
def test_parse_decimal_with_comma_decimal_mark(raw, expected):
    assert parse_decimal(raw, decimal_mark=",") == expected


def test_parse_decimal_with_dot_decimal_mark():
    assert parse_decimal("1,234", decimal_mark=".") == Decimal("1234")


def test_to_row_reads_volume_as_es_ve_count():
    item = {"COD_SIMB": "ABC", "PRECIO": "10,50", "VOLUMEN": "1.234", "MONTO_EFECTIVO": "12.957,00"}
    row = to_row(item, {})
    assert row["volume"] == Decimal("1234")
    assert row["price"] * row["volume"] == row["cash_amount"]
