from __future__ import annotations

from typing import Mapping

from sheets_fdw.domain.models import OptionsType
from sheets_fdw.domain.ports.host import OptionsProtocol
from sheets_fdw.errors import OptionError


class DictOptions(OptionsProtocol):
    """
    Назначение:
        In-memory набор опций одной области (server/table).
    Контракт:
        Пустая строка считается незаданной опцией.
    """

    def __init__(self, values: Mapping[str, str] | None = None, scope: OptionsType = OptionsType.SERVER):
        self._values = {k: v for k, v in (values or {}).items() if v is not None}
        self.scope = scope

    def get(self, key: str) -> str | None:
        value = self._values.get(key)
        if value is None or value == "":
            return None
        return value

    def require(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise OptionError(key, self.scope.value)
        return value

    def require_or(self, key: str, default: str) -> str:
        value = self.get(key)
        return default if value is None else value
