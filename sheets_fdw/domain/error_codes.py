from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок коннектора.
    """

    MALFORMED_KEY = "MALFORMED_KEY"
    TOKEN_EXCHANGE_FAILED = "TOKEN_EXCHANGE_FAILED"
    EMPTY_TOKEN = "EMPTY_TOKEN"
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_STATUS = "HTTP_STATUS"
    UNEXPECTED_FORMAT = "UNEXPECTED_FORMAT"
    INVALID_JSON = "INVALID_JSON"
    MISSING_ROWS = "MISSING_ROWS"
    UNSUPPORTED_COLUMN_TYPE = "UNSUPPORTED_COLUMN_TYPE"
    UNSUPPORTED_CONVERSION = "UNSUPPORTED_CONVERSION"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    MISSING_OPTION = "MISSING_OPTION"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    @classmethod
    def is_retryable_status(cls, status_code: int | None) -> bool:
        """
        Назначение:
            Признак транзиентного HTTP-статуса (408, 429, 5xx).
        """
        if status_code is None:
            return False
        if status_code in (408, 429):
            return True
        return 500 <= status_code <= 599
