from __future__ import annotations

from datetime import date, datetime

import pytest

from parts_sales_importer.config.aliases import DEFAULT_HEADER_ALIASES
from parts_sales_importer.excel.decoder import cell_text, decode_row, is_blank_row
from parts_sales_importer.excel.headers import build_header_map


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (float("nan"), ""),
        (1.0, "1"),
        (1.5, "1.5"),
        (42, "42"),
        ("  A01 ", "  A01 "),
        (date(2025, 1, 31), "2025-01-31"),
        (datetime(2025, 1, 31, 8, 30), "2025-01-31T08:30:00"),
    ],
)
def test_cell_text(value, expected):
    assert cell_text(value) == expected


@pytest.mark.parametrize(
    "row, blank",
    [
        ([], True),
        (None, True),
        (["", "  ", None], True),
        ([float("nan"), ""], True),
        (["", "x"], False),
        ([0], False),
    ],
)
def test_is_blank_row(row, blank):
    assert is_blank_row(row) is blank


def _map(headers):
    return build_header_map(headers, DEFAULT_HEADER_ALIASES)


def test_decode_row_fields_are_trimmed_strings():
    headers = ["據點", "結帳單號", "項目ID", "料號", "數量"]
    decoded = decode_row([" A01 ", "C100", 1.0, "P-9", 5], _map(headers), headers)
    assert decoded.fields == {
        "branchCode": "A01",
        "checkoutNo": "C100",
        "itemId": "1",
        "partNo": "P-9",
        "qty": "5",
    }
    assert decoded.unknown is None


def test_decode_row_keeps_unknown_values_verbatim():
    headers = ["據點", "備註", "供應商"]
    decoded = decode_row(["A01", " 急件 ", 42], _map(headers), headers)
    assert decoded.fields == {"branchCode": "A01"}
    # 原值不做 trim / 型別轉換
    assert decoded.unknown == {"備註": " 急件 ", "供應商": 42}


def test_decode_row_omits_blank_unknown_values():
    headers = ["據點", "備註", "供應商"]
    decoded = decode_row(["A01", "", "  "], _map(headers), headers)
    assert decoded.unknown is None

    decoded = decode_row(["A01", "", "X"], _map(headers), headers)
    assert decoded.unknown == {"供應商": "X"}


def test_decode_row_short_row_yields_empty_fields():
    headers = ["據點", "結帳單號", "項目ID", "備註"]
    decoded = decode_row(["A01"], _map(headers), headers)
    assert decoded.fields == {"branchCode": "A01", "checkoutNo": "", "itemId": ""}
    assert decoded.unknown is None


def test_decode_row_duplicate_unknown_header_keeps_rightmost_non_blank():
    headers = ["據點", "備註", "備註"]
    hm = _map(headers)
    assert decode_row(["A01", "左", "右"], hm, headers).unknown == {"備註": "右"}
    assert decode_row(["A01", "左", ""], hm, headers).unknown == {"備註": "左"}
