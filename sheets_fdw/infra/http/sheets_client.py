from __future__ import annotations

import logging
import time

import httpx

from sheets_fdw.common.sanitize import truncateText
from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.errors import FetchError
from sheets_fdw.infra.logging.setup import logEvent

USER_AGENT = "Sheets FDW"


class SheetsApiClient:
    def __init__(
        self,
        timeoutSeconds: float = 30.0,
        retries: int = 3,
        retryBackoffSeconds: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
        runId: str = "-",
    ):
        """
        Назначение:
            HTTP-клиент для gviz endpoint с экспоненциальными ретраями.
        Контракт:
            - retries: максимум повторных попыток (по умолчанию 3).
            - retryBackoffSeconds: базовая задержка, растёт как base * 2**attempt.
            - transport: подменяется в тестах (httpx.MockTransport).
        """
        self.retries = retries
        self.retryBackoffSeconds = retryBackoffSeconds
        self.retry_attempts = 0
        self.logger = logger or logging.getLogger(__name__)
        self.runId = runId

        self.client = httpx.Client(
            timeout=timeoutSeconds,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> "SheetsApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def getRetryAttempts(self) -> int:
        """Возвращает количество выполненных повторных попыток."""
        return self.retry_attempts

    def _headers(self, bearer: str) -> dict[str, str]:
        """Фиксированные заголовки источника + bearer token."""
        return {
            "user-agent": USER_AGENT,
            "x-datasource-auth": "true",
            "Authorization": f"Bearer {bearer}",
        }

    def _should_retry(self, resp: httpx.Response) -> bool:
        """Решает, стоит ли повторить запрос (408, 429 или 5xx)."""
        return ErrorCode.is_retryable_status(resp.status_code)

    def _sleep_backoff(self, attempt: int) -> None:
        """Задержка с экспоненциальным ростом для ретраев."""
        delay = self.retryBackoffSeconds * (2 ** attempt)
        time.sleep(delay)

    def _request_with_retry(self, url: str, bearer: str) -> httpx.Response:
        """GET с ретраями по транзиентным статусам и сетевым ошибкам, иначе FetchError."""
        attempt = 0
        while True:
            try:
                resp = self.client.get(url, headers=self._headers(bearer))
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= self.retries:
                    raise FetchError(
                        f"Network error: {exc}",
                        code=ErrorCode.NETWORK_ERROR,
                        retryable=False,
                    ) from exc
                logEvent(self.logger, logging.WARNING, self.runId, "http", f"network error, retry={attempt + 1}: {exc}")
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue
            except httpx.RequestError as exc:
                # TooManyRedirects, DecodingError: повтор не поможет.
                raise FetchError(
                    f"Network error: {exc}",
                    code=ErrorCode.NETWORK_ERROR,
                    retryable=False,
                ) from exc

            if resp.is_success:
                return resp

            if self._should_retry(resp) and attempt < self.retries:
                logEvent(
                    self.logger,
                    logging.WARNING,
                    self.runId,
                    "http",
                    f"transient status={resp.status_code}, retry={attempt + 1}",
                )
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            body_snippet = truncateText(resp.text, 200) if resp.text else None
            raise FetchError(
                f"HTTP {resp.status_code}",
                code=ErrorCode.HTTP_STATUS,
                status_code=resp.status_code,
                body_snippet=body_snippet,
                retryable=self._should_retry(resp),
            )

    def fetchText(self, url: str, bearer: str) -> str:
        """GET с ретраями, возвращает тело ответа как текст или бросает FetchError."""
        resp = self._request_with_retry(url, bearer)
        logEvent(
            self.logger,
            logging.DEBUG,
            self.runId,
            "http",
            f"fetched status={resp.status_code} bytes={len(resp.content)} retries={self.retry_attempts}",
        )
        return resp.text
