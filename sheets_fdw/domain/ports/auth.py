from __future__ import annotations

from typing import Protocol

from sheets_fdw.domain.models import AccessToken


class TokenProviderProtocol(Protocol):
    """
    Назначение/ответственность:
        Обмен ключа сервисного аккаунта на короткоживущий bearer token.
    Ограничения:
        Без ретраев: ошибка получения токена прерывает скан.
    """

    def acquire(self, sa_key: str | bytes) -> AccessToken:
        """
        Ошибки/исключения:
            AuthError (MALFORMED_KEY, TOKEN_EXCHANGE_FAILED, EMPTY_TOKEN).
        """
        ...


__all__ = ["TokenProviderProtocol"]
