from __future__ import annotations

import pytest

from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.domain.models import ColumnType, TargetColumn
from sheets_fdw.domain.scan.cursor import RowCursor, ScanState
from sheets_fdw.errors import ColumnTypeError

ID = TargetColumn(name="id", num=1, type_oid=ColumnType.I64)
NAME = TargetColumn(name="name", num=2, type_oid=ColumnType.STRING)

ROWS = [
    {"c": [{"v": 1.0, "f": "1"}, {"v": "Erlich Bachman"}]},
    {"c": [{"v": 2.0, "f": "2"}, {"v": "Richard Hendricks"}, None, None, {"v": None}]},
    {"c": [{"v": 3.0}]},
]


def loaded(rows=ROWS) -> RowCursor:
    cursor = RowCursor()
    cursor.load(rows)
    return cursor


def test_cursor_yields_all_rows_then_none():
    cursor = loaded()

    rows = [cursor.next_row([ID, NAME]) for _ in range(3)]

    assert [r.cells for r in rows] == [
        [1, "Erlich Bachman"],
        [2, "Richard Hendricks"],
        [3, None],
    ]
    assert cursor.next_row([ID, NAME]) is None
    assert cursor.state is ScanState.EXHAUSTED
    assert cursor.position == 3


def test_cursor_end_of_data_has_no_side_effects():
    cursor = loaded()
    while cursor.next_row([ID]) is not None:
        pass

    assert cursor.next_row([ID]) is None
    assert cursor.next_row([ID]) is None
    assert cursor.position == cursor.row_count == 3


def test_cursor_maps_columns_by_ordinal_not_by_request_order():
    cursor = loaded()

    row = cursor.next_row([TargetColumn("name", 2, ColumnType.STRING), TargetColumn("id", 1, ColumnType.I64)])

    assert row.cells == ["Erlich Bachman", 1]


def test_cursor_fills_absent_cells_beyond_row_length():
    cursor = loaded()
    far = TargetColumn(name="far", num=10, type_oid=ColumnType.STRING)

    row = cursor.next_row([ID, far])

    assert row.cells == [1, None]
    assert len(row) == 2


def test_cursor_null_value_is_absent():
    cursor = loaded()
    cursor.next_row([ID])
    col5 = TargetColumn(name="e", num=5, type_oid=ColumnType.I64)
    col3 = TargetColumn(name="c", num=3, type_oid=ColumnType.I64)

    row = cursor.next_row([col3, col5])

    assert row.cells == [None, None]


@pytest.mark.parametrize("value, expected", [(1.0, 1), (2.9, 2), (-2.9, -2), (0, 0), (1e15, 10**15)])
def test_cursor_truncates_numbers_for_integer_columns(value, expected):
    cursor = loaded([{"c": [{"v": value}]}])

    assert cursor.next_row([ID]).cells == [expected]


def test_cursor_empty_row_set_is_immediately_exhausted():
    cursor = loaded([])

    assert cursor.next_row([ID]) is None
    assert cursor.state is ScanState.EXHAUSTED


def test_cursor_without_load_stays_idle():
    cursor = RowCursor()

    assert cursor.next_row([ID]) is None
    assert cursor.state is ScanState.IDLE


def test_integer_column_with_string_value_aborts_scan():
    cursor = loaded([{"c": [{"v": "not a number"}]}, {"c": [{"v": 2.0}]}])

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID])

    assert exc.value.code == ErrorCode.UNSUPPORTED_CONVERSION
    assert exc.value.column == "id"
    assert cursor.position == 0


def test_integer_column_rejects_boolean():
    cursor = loaded([{"c": [{"v": True}]}])

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID])

    assert exc.value.code == ErrorCode.UNSUPPORTED_CONVERSION


def test_integer_column_accepts_int64_lower_bound():
    cursor = loaded([{"c": [{"v": -9.223372036854776e18}]}])

    assert cursor.next_row([ID]).cells == [-(2 ** 63)]


@pytest.mark.parametrize("value", [1e20, -1e20, 9.223372036854776e18, float("inf"), float("nan")])
def test_integer_column_rejects_values_outside_int64(value):
    cursor = loaded([{"c": [{"v": value}]}])

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID])

    assert exc.value.code == ErrorCode.UNSUPPORTED_CONVERSION
    assert cursor.position == 0


def test_integer_too_large_for_float_is_a_conversion_error():
    cursor = loaded([{"c": [{"v": 10 ** 400}, {"v": "Gilfoyle"}]}])

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID, NAME])

    assert exc.value.code == ErrorCode.UNSUPPORTED_CONVERSION
    assert exc.value.column == "id"


def test_string_column_with_number_value_aborts_scan():
    cursor = loaded([{"c": [{"v": 1.0}, {"v": 42.0}]}])

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID, NAME])

    assert exc.value.code == ErrorCode.UNSUPPORTED_CONVERSION
    assert exc.value.column == "name"


@pytest.mark.parametrize("type_oid", [ColumnType.BOOL, ColumnType.F64, ColumnType.DATE, ColumnType.JSON])
def test_unsupported_column_type_fails_on_first_row(type_oid):
    cursor = loaded()
    column = TargetColumn(name="flag", num=7, type_oid=type_oid)

    with pytest.raises(ColumnTypeError) as exc:
        cursor.next_row([ID, column])

    assert exc.value.code == ErrorCode.UNSUPPORTED_COLUMN_TYPE
    assert exc.value.message == "column flag data type is not supported"


def test_unsupported_column_type_is_not_checked_without_rows():
    cursor = loaded([])

    assert cursor.next_row([TargetColumn("d", 1, ColumnType.DATE)]) is None


def test_load_resets_position_and_clear_returns_to_idle():
    cursor = loaded()
    cursor.next_row([ID])
    cursor.next_row([ID])

    cursor.load([{"c": [{"v": 9.0}]}])
    assert cursor.position == 0
    assert cursor.state is ScanState.SCANNING
    assert cursor.next_row([ID]).cells == [9]

    cursor.clear()
    assert cursor.row_count == 0
    assert cursor.state is ScanState.IDLE
