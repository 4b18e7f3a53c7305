from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from sheets_fdw.domain.models import OptionsType, TargetColumn
from sheets_fdw.domain.ports.host import HostContextProtocol
from sheets_fdw.infra.host.options import DictOptions


@dataclass
class StaticHostContext(HostContextProtocol):
    """
    Назначение:
        Контекст хоста с заранее заданными опциями и колонками
        (CLI-хост и тесты).
    """

    server_options: Mapping[str, str] = field(default_factory=dict)
    table_options: Mapping[str, str] = field(default_factory=dict)
    columns: Sequence[TargetColumn] = field(default_factory=list)

    def get_options(self, options_type: OptionsType) -> DictOptions:
        if options_type is OptionsType.TABLE:
            return DictOptions(self.table_options, scope=OptionsType.TABLE)
        return DictOptions(self.server_options, scope=OptionsType.SERVER)

    def get_columns(self) -> Sequence[TargetColumn]:
        return list(self.columns)
