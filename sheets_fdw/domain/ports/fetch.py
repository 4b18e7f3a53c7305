from __future__ import annotations

from typing import Protocol


class FetchClientProtocol(Protocol):
    """
    Назначение/ответственность:
        Выполняет аутентифицированный GET и возвращает тело ответа как текст.
    Взаимодействия:
        Реализации инкапсулируют заголовки и политику ретраев.
    """

    def fetchText(self, url: str, bearer: str) -> str:
        """
        Ошибки/исключения:
            FetchError (NETWORK_ERROR, HTTP_STATUS) после исчерпания ретраев.
        """
        ...

    def getRetryAttempts(self) -> int: ...

    def close(self) -> None: ...


__all__ = ["FetchClientProtocol"]
