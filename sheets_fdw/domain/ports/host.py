from __future__ import annotations

from typing import Protocol, Sequence

from sheets_fdw.domain.models import OptionsType, TargetColumn


class OptionsProtocol(Protocol):
    """
    Назначение:
        Плоский набор строковых опций хоста одной области (server/table).
    """

    def get(self, key: str) -> str | None: ...

    def require(self, key: str) -> str:
        """
        Ошибки/исключения:
            OptionError, если опция не задана.
        """
        ...

    def require_or(self, key: str, default: str) -> str: ...


class HostContextProtocol(Protocol):
    """
    Назначение/ответственность:
        Контекст вызова жизненного цикла, предоставляемый хостом.
    Взаимодействия:
        Передаётся в каждый метод SheetsFdw вместе с ConnectorState.
    """

    def get_options(self, options_type: OptionsType) -> OptionsProtocol: ...

    def get_columns(self) -> Sequence[TargetColumn]: ...


class InfoReporterProtocol(Protocol):
    """
    Назначение:
        Информационный канал к оператору (не часть контракта данных).
    """

    def report_info(self, message: str) -> None: ...


__all__ = ["OptionsProtocol", "HostContextProtocol", "InfoReporterProtocol"]
