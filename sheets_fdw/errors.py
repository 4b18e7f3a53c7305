from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from sheets_fdw.domain.error_codes import ErrorCode


@dataclass
class AppError(Exception):
    """
    Унифицированная ошибка приложения.
    """

    category: str
    code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class AuthError(AppError):
    """
    Назначение:
        Ошибки получения access token по ключу сервисного аккаунта.
    Контракт:
        code: MALFORMED_KEY | TOKEN_EXCHANGE_FAILED | EMPTY_TOKEN.
    """

    def __init__(self, message: str, code: ErrorCode, details: dict | None = None):
        super().__init__(
            category="auth",
            code=code.value,
            message=message,
            retryable=False,
            details=details or {},
        )


class FetchError(AppError):
    """
    Назначение:
        Ошибка HTTP-запроса после исчерпания ретраев.
    Контракт:
        - code: NETWORK_ERROR (сетевой сбой) или HTTP_STATUS (итоговый не-2xx).
        - status_code/body_snippet используются для диагностики.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        status_code: int | None = None,
        body_snippet: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(
            category="fetch",
            code=code.value,
            message=message,
            retryable=retryable,
            details={"status_code": status_code, "body_snippet": body_snippet},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


class ParseError(AppError):
    """
    Назначение:
        Ответ источника не соответствует ожидаемому конверту gviz.
    """

    def __init__(self, message: str, code: ErrorCode):
        super().__init__(category="parse", code=code.value, message=message, retryable=False)


class ColumnTypeError(AppError):
    """
    Назначение:
        Невозможно отобразить ячейку источника на тип целевой колонки.
    Контракт:
        - code: UNSUPPORTED_COLUMN_TYPE (тип колонки не поддерживается коннектором)
          или UNSUPPORTED_CONVERSION (значение ячейки не приводится к типу колонки).
        - column: имя колонки.
    """

    def __init__(self, message: str, code: ErrorCode, column: str):
        super().__init__(
            category="type",
            code=code.value,
            message=message,
            retryable=False,
            details={"column": column},
        )
        self.column = column


class UnsupportedOperationError(AppError):
    def __init__(self, message: str):
        super().__init__(
            category="operation",
            code=ErrorCode.UNSUPPORTED_OPERATION.value,
            message=message,
            retryable=False,
        )


class OptionError(AppError):
    def __init__(self, key: str, scope: str):
        super().__init__(
            category="config",
            code=ErrorCode.MISSING_OPTION.value,
            message=f"required option '{key}' is not specified",
            retryable=False,
            details={"key": key, "scope": scope},
        )
        self.key = key


__all__ = [
    "AppError",
    "AuthError",
    "FetchError",
    "ParseError",
    "ColumnTypeError",
    "UnsupportedOperationError",
    "OptionError",
]
