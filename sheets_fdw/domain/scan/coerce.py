from __future__ import annotations

import math

from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.domain.models import SUPPORTED_COLUMN_TYPES, Cell, ColumnType, TargetColumn
from sheets_fdw.domain.scan.cells import (
    AbsentCell,
    NullCell,
    NumberCell,
    SourceCell,
    StringCell,
)
from sheets_fdw.errors import ColumnTypeError

I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1


def ensure_supported(column: TargetColumn) -> None:
    """
    Назначение:
        Проверяет, что коннектор умеет заполнять колонку такого типа.
    Ошибки/исключения:
        ColumnTypeError(UNSUPPORTED_COLUMN_TYPE).
    """
    if column.type_oid not in SUPPORTED_COLUMN_TYPES:
        raise ColumnTypeError(
            f"column {column.name} data type is not supported",
            code=ErrorCode.UNSUPPORTED_COLUMN_TYPE,
            column=column.name,
        )


def coerce_cell(cell: SourceCell, column: TargetColumn) -> Cell:
    """
    Назначение:
        Приводит ячейку источника к объявленному типу целевой колонки.
        Тип колонки должен быть заранее проверен ensure_supported.

    Алгоритм:
        - AbsentCell/NullCell: None.
        - I64: NumberCell усекается до целого (int()); нечисловое значение
          или выход за пределы int64 - ошибка.
        - STRING: StringCell возвращается без изменений, иначе ошибка.

    Ошибки/исключения:
        ColumnTypeError(UNSUPPORTED_CONVERSION) прерывает весь скан, строка не пропускается.
    """
    if isinstance(cell, (AbsentCell, NullCell)):
        return None

    if column.type_oid is ColumnType.I64:
        if isinstance(cell, NumberCell) and math.isfinite(cell.value):
            value = int(cell.value)
            if I64_MIN <= value <= I64_MAX:
                return value
    elif column.type_oid is ColumnType.STRING:
        if isinstance(cell, StringCell):
            return cell.value

    raise ColumnTypeError(
        f"cannot convert value of column {column.name} to {column.type_oid.value}",
        code=ErrorCode.UNSUPPORTED_CONVERSION,
        column=column.name,
    )
