from __future__ import annotations

from sheets_fdw.domain.ports.secrets import SecretProviderProtocol


class NullSecretProvider(SecretProviderProtocol):
    """
    Назначение:
        Реализация-пустышка: никогда не возвращает секрет.
    Паттерн:
        Null Object.
    """

    def get_secret(self, *, name: str) -> str | None:
        return None
