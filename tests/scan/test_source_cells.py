from __future__ import annotations

import pytest

from sheets_fdw.domain.scan.cells import (
    AbsentCell,
    NullCell,
    NumberCell,
    OpaqueCell,
    StringCell,
    read_cell,
)

ROW = {
    "c": [
        {"v": 1.0, "f": "1"},
        {"v": "Erlich Bachman"},
        None,
        {"f": "formatted only"},
        {"v": None},
        {"v": True},
        {"v": 7},
    ]
}


@pytest.mark.parametrize(
    "index, expected",
    [
        (0, NumberCell(1.0)),
        (1, StringCell("Erlich Bachman")),
        (2, AbsentCell()),
        (3, AbsentCell()),
        (4, NullCell()),
        (5, OpaqueCell(True)),
        (6, NumberCell(7.0)),
        (7, AbsentCell()),
        (100, AbsentCell()),
    ],
)
def test_read_cell_variants(index, expected):
    assert read_cell(ROW, index) == expected


@pytest.mark.parametrize("row", [None, [], "text", {}, {"c": None}, {"c": {"0": {"v": 1}}}])
def test_read_cell_on_malformed_row_is_absent(row):
    assert read_cell(row, 0) == AbsentCell()


def test_read_cell_negative_index_is_absent():
    assert read_cell(ROW, -1) == AbsentCell()


def test_read_cell_integer_beyond_float_range_is_opaque():
    huge = 10 ** 400

    assert read_cell({"c": [{"v": huge}]}, 0) == OpaqueCell(huge)
