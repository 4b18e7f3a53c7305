from __future__ import annotations

from typing import Dict

from sheets_fdw.domain.ports.secrets import SecretProviderProtocol


class DictSecretProvider(SecretProviderProtocol):
    """
    Назначение:
        Простая in-memory реализация для тестов/ручных сценариев.
    """

    def __init__(self, mapping: Dict[str, str] | None = None):
        self._mapping: Dict[str, str] = dict(mapping or {})

    def get_secret(self, *, name: str) -> str | None:
        return self._mapping.get(name)
