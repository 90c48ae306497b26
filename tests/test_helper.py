"""
Tests for numeric parsing, display formatting and the CSV bulk transfer format.
"""

import io
import math

import numpy as np
import pytest

from optionlens_core.helper import (
    CSV_HEADERS,
    PLACEHOLDER,
    format_breakeven,
    format_usd,
    load_positions_csv,
    normalize_option_type,
    parse_number_or,
    positions_to_csv,
)


class TestParseNumberOr:
    @pytest.mark.parametrize("raw,fallback,expected", [
        ("1.72", 0, 1.72),
        ("", 0, 0),
        ("abc", 5, 5),
        (".5", 0, 0.5),
        ("1.", 0, 1.0),
        ("-2.25", 0, -2.25),
        ("+3", 0, 3.0),
        ("  4.5  ", 0, 4.5),
        ("1.72abc", 0, 1.72),
        ("1.2.3", 0, 1.2),
        ("1e3", 0, 1000.0),
        ("1e", 0, 1.0),
        (".", 7, 7),
        ("-", 7, 7),
        ("$5", 7, 7),
    ])
    def test_text(self, raw, fallback, expected):
        assert parse_number_or(raw, fallback) == expected

    def test_numbers_pass_through(self):
        assert parse_number_or(3, 0) == 3.0
        assert parse_number_or(2.5, 0) == 2.5
        assert parse_number_or(np.float64(1.25), 0) == 1.25

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), -float("inf"), "1e400", None, True, [], {}])
    def test_fallback(self, raw):
        assert parse_number_or(raw, 9) == 9

    @pytest.mark.parametrize("raw", ["١٢", "٣.٥", "１２"])
    def test_non_ascii_digits_fall_back(self, raw):
        assert parse_number_or(raw, 7) == 7

    def test_default_fallback_is_zero(self):
        assert parse_number_or("nope") == 0.0


class TestFormatting:
    def test_usd(self):
        assert format_usd(1234.5) == "$1,234.50"
        assert format_usd(-100) == "-$100.00"
        assert format_usd(0) == "$0.00"

    @pytest.mark.parametrize("value", [float("nan"), None, "abc", float("inf")])
    def test_usd_placeholder(self, value):
        assert format_usd(value) == PLACEHOLDER

    def test_breakeven(self):
        assert format_breakeven(16) == "16.00"
        assert format_breakeven(float("nan")) == PLACEHOLDER

    def test_option_type(self):
        assert normalize_option_type("p") == "P"
        assert normalize_option_type("P ") == "P"
        assert normalize_option_type("") == "C"
        assert normalize_option_type(None) == "C"
        assert normalize_option_type("X") == "C"


def sample_positions():
    return [
        {"id": "1", "ticker": "CIFR", "contract": "CIFR Dec 19 2025 15C", "expiration": "2025-12-19",
         "strike": "15", "type": "C", "contracts": "1", "entry_price": "1.00", "current_price": "0.90",
         "notes": 'rolled, "again"'},
        {"id": "2", "ticker": "SPY", "contract": "SPY Jan 16 2026 500P", "expiration": "2026-01-16",
         "strike": "500", "type": "P", "contracts": "3", "entry_price": "4.10", "current_price": "",
         "notes": None},
    ]


class TestCsvExport:
    def test_header_and_quoting(self):
        lines = positions_to_csv(sample_positions()).split("\n")
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == '"CIFR","CIFR Dec 19 2025 15C","2025-12-19","15","C","1","1.00","0.90","rolled, again"'
        assert lines[2] == '"SPY","SPY Jan 16 2026 500P","2026-01-16","500","P","3","4.10","",""'
        assert len(lines) == 3

    def test_empty(self):
        assert positions_to_csv([]) == ",".join(CSV_HEADERS) + "\n"


class TestCsvImport:
    def test_reads_export(self):
        imported = load_positions_csv(io.StringIO(positions_to_csv(sample_positions())))
        assert [p["ticker"] for p in imported] == ["CIFR", "SPY"]
        assert imported[0]["notes"] == "rolled, again"
        assert imported[1]["type"] == "P"
        assert imported[1]["current_price"] == ""
        assert imported[0]["id"] != imported[1]["id"]
        assert imported[0]["id"] not in ("1", "2")

    def test_short_rows_and_type_mapping(self):
        text = "Ticker,Contract,Expiration,Strike,Type\nAAPL,AAPL 200C,2026-03-20,200,p\n\nMSFT\n"
        imported = load_positions_csv(io.StringIO(text))
        assert len(imported) == 2
        assert imported[0]["type"] == "P"
        assert imported[0]["entry_price"] == ""
        assert imported[1]["ticker"] == "MSFT"
        assert imported[1]["type"] == "C"
        assert imported[1]["notes"] == ""

    def test_extra_fields_are_dropped(self):
        text = (
            ",".join(CSV_HEADERS) + "\n"
            + "MSFT,MSFT 400C,2026-03-20,400,C,2,3.00,3.50,ok\n"
            + "AAPL,AAPL 200C,2026-03-20,200,C,1,1.00,1.50,rolled, twice\n"
        )
        imported = load_positions_csv(io.StringIO(text))
        assert [p["ticker"] for p in imported] == ["MSFT", "AAPL"]
        assert imported[1]["current_price"] == "1.50"
        assert imported[1]["notes"] == "rolled"

    def test_header_only(self):
        assert load_positions_csv(io.StringIO(",".join(CSV_HEADERS) + "\n")) == []

    def test_empty_file(self):
        assert load_positions_csv(io.StringIO("")) == []

    def test_numbers_stay_text(self):
        text = ",".join(CSV_HEADERS) + '\n"X","X 1C","","1.50","C","2","0.10","0.20",""\n'
        imported = load_positions_csv(io.StringIO(text))
        assert imported[0]["strike"] == "1.50"
        assert imported[0]["entry_price"] == "0.10"
        assert not math.isnan(parse_number_or(imported[0]["current_price"], float("nan")))
