from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from sheets_fdw.domain.scan.cursor import RowCursor


DEFAULT_BASE_URL = "https://docs.google.com/spreadsheets/d"

# Значение целевой ячейки: None означает отсутствующее значение (SQL NULL).
Cell = Union[int, str, None]


class OptionsType(str, Enum):
    """
    Назначение:
        Область опций хоста: сервер (общие параметры) или таблица (параметры листа).
    """

    SERVER = "server"
    TABLE = "table"


class ColumnType(str, Enum):
    """
    Назначение:
        Объявленный тип целевой колонки (по аналогии с type oid хоста).
    Ограничения:
        Коннектор поддерживает только I64 и STRING, остальные типы
        приводят к ошибке на первой строке скана.
    """

    BOOL = "bool"
    I8 = "i8"
    I16 = "i16"
    F32 = "f32"
    I32 = "i32"
    F64 = "f64"
    I64 = "i64"
    NUMERIC = "numeric"
    STRING = "string"
    DATE = "date"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamptz"
    JSON = "json"
    UUID = "uuid"


SUPPORTED_COLUMN_TYPES = frozenset({ColumnType.I64, ColumnType.STRING})


@dataclass(frozen=True)
class TargetColumn:
    """
    Назначение:
        Колонка целевой таблицы, запрошенная хостом.
    Инварианты:
        - num: порядковый номер колонки, начиная с 1.
    """

    name: str
    num: int
    type_oid: ColumnType


@dataclass
class TargetRow:
    """
    Назначение:
        Одна строка результата скана: по ячейке на каждую запрошенную колонку.
    """

    cells: list[Cell] = field(default_factory=list)

    def push(self, cell: Cell) -> None:
        self.cells.append(cell)

    def __len__(self) -> int:
        return len(self.cells)


@dataclass(frozen=True)
class AccessToken:
    token: str
    expiry: datetime | None = None


@dataclass
class ConnectorState:
    """
    Назначение/ответственность:
        Состояние коннектора в рамках сессии хоста.
    Инварианты/гарантии:
        - base_url задаётся в init и сохраняется между сканами.
        - cursor владеет строками текущего скана; end_scan их очищает.
    Взаимодействия:
        Создаётся SheetsFdw.init(), хранится в HostSession и передаётся
        в каждый вызов жизненного цикла.
    """

    base_url: str
    cursor: "RowCursor"
    # Диагностика последнего begin_scan (для отчёта CLI).
    fetch_retries: int = 0
