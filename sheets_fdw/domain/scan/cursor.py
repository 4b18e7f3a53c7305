from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Sequence

from sheets_fdw.domain.models import TargetColumn, TargetRow
from sheets_fdw.domain.scan.cells import read_cell
from sheets_fdw.domain.scan.coerce import coerce_cell, ensure_supported


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    EXHAUSTED = "exhausted"


class RowCursor:
    """
    Назначение/ответственность:
        Курсор по строкам, полученным за один скан: на каждом шаге
        отображает одну строку источника на запрошенные колонки.
    Инварианты/гарантии:
        - position не убывает в пределах скана и сбрасывается только load().
        - position == row_count - единственное условие конца данных.
        - В каждой TargetRow ровно по ячейке на колонку, в порядке колонок.
    Ограничения:
        Перемотка (rewind) не поддерживается: новый проход только через load().
    """

    def __init__(self) -> None:
        self._rows: list[Any] = []
        self._position = 0
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def position(self) -> int:
        return self._position

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def load(self, rows: Iterable[Any]) -> None:
        self._rows = list(rows)
        self._position = 0
        self._state = ScanState.SCANNING

    def clear(self) -> None:
        self._rows = []
        self._position = 0
        self._state = ScanState.IDLE

    def next_row(self, columns: Sequence[TargetColumn]) -> TargetRow | None:
        """
        Контракт (вход/выход):
            Вход: колонки в порядке, запрошенном хостом.
            Выход: TargetRow или None, если строки закончились.
        Алгоритм:
            - Если position >= row_count: None (SCANNING -> EXHAUSTED).
            - Для каждой колонки: проверка типа, ячейка по индексу num - 1, приведение.
            - position += 1 только после успешной сборки строки.
        Ошибки/исключения:
            ColumnTypeError прерывает скан.
        """
        if self._position >= len(self._rows):
            if self._state is ScanState.SCANNING:
                self._state = ScanState.EXHAUSTED
            return None

        src_row = self._rows[self._position]
        row = TargetRow()
        for column in columns:
            ensure_supported(column)
            cell = read_cell(src_row, column.num - 1)
            row.push(coerce_cell(cell, column))

        self._position += 1
        return row
