from __future__ import annotations

from typing import Iterable

from sheets_fdw.domain.ports.secrets import SecretProviderProtocol


class CompositeSecretProvider(SecretProviderProtocol):
    """
    Назначение:
        Объединяет несколько провайдеров и возвращает первый найденный секрет.
    Паттерн:
        Composite / Chain of Responsibility.
    """

    def __init__(self, providers: Iterable[SecretProviderProtocol]):
        self._providers = list(providers)

    def get_secret(self, *, name: str) -> str | None:
        for provider in self._providers:
            value = provider.get_secret(name=name)
            if value is not None:
                return value
        return None
