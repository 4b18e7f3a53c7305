from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class NumberCell:
    value: float


@dataclass(frozen=True)
class StringCell:
    value: str


@dataclass(frozen=True)
class NullCell:
    """Ячейка присутствует, но её значение v равно null."""


@dataclass(frozen=True)
class AbsentCell:
    """В строке источника нет ячейки (или поля v) на этой позиции."""


@dataclass(frozen=True)
class OpaqueCell:
    """Значение другого JSON-вида (bool, объект, массив)."""

    raw: Any


SourceCell = Union[NumberCell, StringCell, NullCell, AbsentCell, OpaqueCell]

ABSENT = AbsentCell()
NULL = NullCell()


def read_cell(row: Any, index: int) -> SourceCell:
    """
    Назначение:
        Извлекает ячейку строки gviz по 0-based позиции (аналог пути /c/{index}/v).

    Входные данные:
        row: Any
            Строка источника, ожидается {"c": [{"v": ..., "f": ...}, null, ...]}.
        index: int
            Позиция ячейки.

    Выходные данные:
        SourceCell

    Алгоритм:
        - Строка не объект, нет массива c, индекс вне массива, элемент null
          или у ячейки нет поля v: AbsentCell.
        - v == null: NullCell.
        - bool проверяется раньше числа (в Python bool является подклассом int).
        - int/float: NumberCell (целое вне диапазона float: OpaqueCell),
          str: StringCell, иначе OpaqueCell.
    """
    if index < 0 or not isinstance(row, dict):
        return ABSENT
    cells = row.get("c")
    if not isinstance(cells, list) or index >= len(cells):
        return ABSENT
    cell = cells[index]
    if not isinstance(cell, dict) or "v" not in cell:
        return ABSENT

    value = cell["v"]
    if value is None:
        return NULL
    if isinstance(value, bool):
        return OpaqueCell(value)
    if isinstance(value, (int, float)):
        try:
            return NumberCell(float(value))
        except OverflowError:
            return OpaqueCell(value)
    if isinstance(value, str):
        return StringCell(value)
    return OpaqueCell(value)
