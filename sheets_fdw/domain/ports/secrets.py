from __future__ import annotations

from typing import Protocol


class SecretProviderProtocol(Protocol):
    """
    Назначение:
        Порт для получения секретов (ключ сервисного аккаунта и т.п.) по имени.
    Взаимодействия:
        Вызывается SheetsFdw.begin_scan, если ключ задан ссылкой sa_key_id.
    Ограничения:
        Не знает о конкретных источниках (файлы/хранилище), только о контракте.
    """

    def get_secret(self, *, name: str) -> str | None:
        """
        Контракт (вход/выход):
            - Вход: имя секрета.
            - Выход: строка-секрет или None, если секрет недоступен.
        """
        ...


class SecretStoreProtocol(Protocol):
    def put(self, *, name: str, value: str, run_id: str | None = None) -> None: ...


__all__ = ["SecretProviderProtocol", "SecretStoreProtocol"]
