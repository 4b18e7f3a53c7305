from __future__ import annotations

import logging
from typing import Callable

from sheets_fdw.domain.models import (
    DEFAULT_BASE_URL,
    Cell,
    ConnectorState,
    OptionsType,
    TargetRow,
)
from sheets_fdw.domain.ports.auth import TokenProviderProtocol
from sheets_fdw.domain.ports.fetch import FetchClientProtocol
from sheets_fdw.domain.ports.host import HostContextProtocol, InfoReporterProtocol
from sheets_fdw.domain.ports.secrets import SecretProviderProtocol
from sheets_fdw.domain.scan.cursor import RowCursor
from sheets_fdw.errors import AppError, OptionError, UnsupportedOperationError
from sheets_fdw.infra.http.gviz import build_query_url, parse_rows
from sheets_fdw.infra.logging.info_reporter import LoggerInfoReporter
from sheets_fdw.infra.logging.setup import logEvent
from sheets_fdw.infra.secrets.null_provider import NullSecretProvider

HOST_VERSION_REQUIREMENT = "^0.1.0"


class SheetsFdw:
    """
    Назначение/ответственность:
        Оболочка жизненного цикла коннектора: связывает получение токена,
        загрузку, разбор ответа и курсор в вызовах, которые делает хост.
    Инварианты/гарантии:
        - Сам объект не хранит состояние скана: оно в ConnectorState,
          который хост передаёт в каждый вызов.
        - Любая ошибка прерывает текущий вызов; частичных результатов нет.
    Ограничения:
        - Один скан за раз на одно состояние, синхронно.
        - re_scan и запись (begin_modify) не поддерживаются.
    """

    def __init__(
        self,
        token_provider: TokenProviderProtocol,
        client_factory: Callable[[], FetchClientProtocol],
        info_reporter: InfoReporterProtocol | None = None,
        secret_provider: SecretProviderProtocol | None = None,
        logger: logging.Logger | None = None,
        run_id: str = "-",
    ):
        self._token_provider = token_provider
        self._client_factory = client_factory
        self._info = info_reporter or LoggerInfoReporter(logger, run_id)
        self._secrets = secret_provider or NullSecretProvider()
        self._logger = logger or logging.getLogger(__name__)
        self._run_id = run_id

    @staticmethod
    def host_version_requirement() -> str:
        """semver-выражение версии хоста, с которой совместим коннектор."""
        return HOST_VERSION_REQUIREMENT

    def init(self, ctx: HostContextProtocol) -> ConnectorState:
        opts = ctx.get_options(OptionsType.SERVER)
        base_url = opts.require_or("base_url", DEFAULT_BASE_URL)
        logEvent(self._logger, logging.DEBUG, self._run_id, "core", f"init base_url={base_url}")
        return ConnectorState(base_url=base_url, cursor=RowCursor())

    def _resolve_sa_key(self, ctx: HostContextProtocol) -> str:
        """
        Алгоритм:
            - Опция сервера sa_key (ключ передан напрямую).
            - Иначе sa_key_id: имя секрета в хранилище (vault).
            - Иначе OptionError по sa_key.
        """
        opts = ctx.get_options(OptionsType.SERVER)
        sa_key = opts.get("sa_key")
        if sa_key is not None:
            return sa_key

        sa_key_id = opts.get("sa_key_id")
        if sa_key_id is None:
            raise OptionError("sa_key", OptionsType.SERVER.value)
        sa_key = self._secrets.get_secret(name=sa_key_id)
        if sa_key is None:
            raise OptionError(f"sa_key_id={sa_key_id}", "vault")
        return sa_key

    def begin_scan(self, state: ConnectorState, ctx: HostContextProtocol) -> None:
        """
        Контракт (вход/выход):
            Вход: состояние после init и контекст с опциями таблицы.
            Выход: None; курсор переведён в SCANNING с позицией 0.
        Алгоритм:
            - Ключ сервисного аккаунта -> access token.
            - URL из base_url, spread_sheet_id и (опционально) sheet_id.
            - Один GET с ретраями, разбор ответа, загрузка строк в курсор.
            - Количество строк уходит в информационный канал.
        Ошибки/исключения:
            AppError любого вида; при ошибке курсор остаётся пустым.
        """
        state.cursor.clear()
        state.fetch_retries = 0

        try:
            sa_key = self._resolve_sa_key(ctx)
            access_token = self._token_provider.acquire(sa_key)

            opts = ctx.get_options(OptionsType.TABLE)
            spread_sheet_id = opts.require("spread_sheet_id")
            sheet_id = opts.get("sheet_id")
            url = build_query_url(state.base_url, spread_sheet_id, sheet_id)
            logEvent(self._logger, logging.INFO, self._run_id, "scan", f"begin scan url={url}")

            client = self._client_factory()
            try:
                body = client.fetchText(url, access_token.token)
            finally:
                state.fetch_retries = client.getRetryAttempts()
                client.close()

            rows = parse_rows(body)
        except AppError as exc:
            logEvent(self._logger, logging.ERROR, self._run_id, "scan", f"begin scan failed code={exc.code}: {exc}")
            raise

        state.cursor.load(rows)
        self._info.report_info(f"We got response array length: {len(rows)}")

    def iter_scan(self, state: ConnectorState, ctx: HostContextProtocol) -> TargetRow | None:
        """
        Контракт (вход/выход):
            Выход: следующая TargetRow или None, если строки закончились.
        Ошибки/исключения:
            ColumnTypeError прерывает скан целиком.
        """
        try:
            return state.cursor.next_row(ctx.get_columns())
        except AppError as exc:
            logEvent(
                self._logger,
                logging.ERROR,
                self._run_id,
                "scan",
                f"row {state.cursor.position} failed code={exc.code}: {exc}",
            )
            raise

    def re_scan(self, state: ConnectorState, ctx: HostContextProtocol) -> None:
        raise UnsupportedOperationError("re_scan on foreign table is not supported")

    def end_scan(self, state: ConnectorState, ctx: HostContextProtocol) -> None:
        logEvent(
            self._logger,
            logging.DEBUG,
            self._run_id,
            "scan",
            f"end scan rows={state.cursor.row_count} emitted={state.cursor.position}",
        )
        state.cursor.clear()

    def begin_modify(self, state: ConnectorState, ctx: HostContextProtocol) -> None:
        raise UnsupportedOperationError("modify on foreign table is not supported")

    # Недостижимы после отказа begin_modify, определены для полноты контракта.
    def insert(self, state: ConnectorState, ctx: HostContextProtocol, row: TargetRow) -> None:
        return None

    def update(self, state: ConnectorState, ctx: HostContextProtocol, rowid: Cell, row: TargetRow) -> None:
        return None

    def delete(self, state: ConnectorState, ctx: HostContextProtocol, rowid: Cell) -> None:
        return None

    def end_modify(self, state: ConnectorState, ctx: HostContextProtocol) -> None:
        return None
