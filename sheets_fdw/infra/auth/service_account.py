from __future__ import annotations

import json
import logging
from typing import Any, Callable

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.domain.models import AccessToken
from sheets_fdw.domain.ports.auth import TokenProviderProtocol
from sheets_fdw.errors import AuthError
from sheets_fdw.infra.logging.setup import logEvent

SPREADSHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
SCOPES = [SPREADSHEETS_READONLY_SCOPE]


class ServiceAccountTokenProvider(TokenProviderProtocol):
    """
    Назначение/ответственность:
        Получает access token по ключу сервисного аккаунта (google-auth).
    Ограничения:
        - Скоуп фиксирован: только чтение таблиц.
        - Обмен блокирующий, без ретраев.
    """

    def __init__(
        self,
        scopes: list[str] | None = None,
        requestFactory: Callable[[], Any] = Request,
        logger: logging.Logger | None = None,
        runId: str = "-",
    ):
        self.scopes = list(scopes or SCOPES)
        self.requestFactory = requestFactory
        self.logger = logger or logging.getLogger(__name__)
        self.runId = runId

    def _load_credentials(self, sa_key: str | bytes) -> service_account.Credentials:
        try:
            info = json.loads(sa_key)
            if not isinstance(info, dict):
                raise ValueError("service account key must be a JSON object")
            return service_account.Credentials.from_service_account_info(info, scopes=self.scopes)
        except (ValueError, TypeError, KeyError) as exc:
            raise AuthError(f"malformed service account key: {exc}", code=ErrorCode.MALFORMED_KEY) from exc

    def acquire(self, sa_key: str | bytes) -> AccessToken:
        """
        Контракт (вход/выход):
            Вход: JSON ключа сервисного аккаунта.
            Выход: AccessToken.
        Алгоритм:
            - Разобрать ключ (ошибка: MALFORMED_KEY).
            - credentials.refresh(Request()) (ошибка транспорта/отказ: TOKEN_EXCHANGE_FAILED).
            - Пустой token после обмена: EMPTY_TOKEN.
        """
        credentials = self._load_credentials(sa_key)
        try:
            credentials.refresh(self.requestFactory())
        except GoogleAuthError as exc:
            raise AuthError(f"token exchange failed: {exc}", code=ErrorCode.TOKEN_EXCHANGE_FAILED) from exc

        token = credentials.token
        if not token:
            raise AuthError(
                "no token found in token exchange response",
                code=ErrorCode.EMPTY_TOKEN,
                details={"expiry": str(credentials.expiry) if credentials.expiry else None},
            )

        logEvent(self.logger, logging.INFO, self.runId, "auth", f"access token acquired expiry={credentials.expiry}")
        return AccessToken(token=token, expiry=credentials.expiry)
