from __future__ import annotations

import csv
import io
import json
import logging
import sys
import time
from pathlib import Path

import typer

from sheets_fdw.common.run_id import generate_run_id
from sheets_fdw.common.time import getDurationMs
from sheets_fdw.config import Settings, loadSettings
from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.domain.models import ColumnType, TargetColumn
from sheets_fdw.errors import AppError
from sheets_fdw.infra.artifacts.report_writer import (
    Report,
    createEmptyReport,
    finalizeReport,
    recordError,
    writeReportJson,
)
from sheets_fdw.infra.auth.service_account import ServiceAccountTokenProvider
from sheets_fdw.infra.host.context import StaticHostContext
from sheets_fdw.infra.host.session import HostSession
from sheets_fdw.infra.http.sheets_client import SheetsApiClient
from sheets_fdw.infra.logging.info_reporter import EchoInfoReporter
from sheets_fdw.infra.logging.setup import (
    StdStreamToLogger,
    TeeStream,
    closeCommandLogger,
    createCommandLogger,
    logEvent,
    registerSecret,
)
from sheets_fdw.infra.secrets import (
    CompositeSecretProvider,
    FileVaultSecretProvider,
    FileVaultSecretStore,
    NullSecretProvider,
)
from sheets_fdw.usecases.sheets_fdw import SheetsFdw

app = typer.Typer(no_args_is_help=True, add_completion=False)
vaultApp = typer.Typer(no_args_is_help=True)

COLUMN_TYPE_NAMES: dict[str, ColumnType] = {
    "bigint": ColumnType.I64,
    "int8": ColumnType.I64,
    "i64": ColumnType.I64,
    "text": ColumnType.STRING,
    "string": ColumnType.STRING,
    "varchar": ColumnType.STRING,
    "bool": ColumnType.BOOL,
    "boolean": ColumnType.BOOL,
    "char": ColumnType.I8,
    "smallint": ColumnType.I16,
    "int2": ColumnType.I16,
    "integer": ColumnType.I32,
    "int": ColumnType.I32,
    "int4": ColumnType.I32,
    "real": ColumnType.F32,
    "float4": ColumnType.F32,
    "double": ColumnType.F64,
    "float8": ColumnType.F64,
    "numeric": ColumnType.NUMERIC,
    "date": ColumnType.DATE,
    "timestamp": ColumnType.TIMESTAMP,
    "timestamptz": ColumnType.TIMESTAMPTZ,
    "json": ColumnType.JSON,
    "jsonb": ColumnType.JSON,
    "uuid": ColumnType.UUID,
}

def parseColumns(specs: list[str]) -> list[TargetColumn]:
    """
    Назначение:
        Разбирает описания колонок вида name:type[:num] в TargetColumn.
        num - номер колонки источника (с 1), по умолчанию позиция в списке.

    Поведение:
        - Неизвестный тип или неверный формат: typer.BadParameter (exit code 2).
        - Известные, но неподдерживаемые типы (например date) принимаются:
          ошибка возникает на первой строке скана.
    """
    columns: list[TargetColumn] = []
    for position, spec in enumerate(specs, start=1):
        parts = spec.split(":")
        if len(parts) not in (2, 3) or not all(p.strip() for p in parts):
            raise typer.BadParameter(f"column must be NAME:TYPE[:NUM], got '{spec}'", param_hint="--column")
        name, typeName = parts[0].strip(), parts[1].strip()
        typeOid = COLUMN_TYPE_NAMES.get(typeName.lower())
        if typeOid is None:
            raise typer.BadParameter(f"unknown column type '{typeName}'", param_hint="--column")
        num = position
        if len(parts) == 3:
            try:
                num = int(parts[2])
            except ValueError:
                raise typer.BadParameter(f"column number must be an integer, got '{parts[2]}'", param_hint="--column") from None
            if num < 1:
                raise typer.BadParameter(f"column number must be >= 1, got {num}", param_hint="--column")
        columns.append(TargetColumn(name=name, num=num, type_oid=typeOid))
    return columns

def readSaKey(settings: Settings) -> str | None:
    """
    Назначение:
        Читает ключ сервисного аккаунта из sa_key_file (если задан).

    Поведение:
        - Файл не найден: exit code 2.
    """
    if not settings.sa_key_file:
        return None
    p = Path(settings.sa_key_file)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: sa-key-file not found: {settings.sa_key_file}", err=True)
        raise typer.Exit(code=2)
    return p.read_text(encoding="utf-8")

def buildSecretProvider(settings: Settings):
    if settings.vault_file:
        return CompositeSecretProvider([FileVaultSecretProvider(settings.vault_file)])
    return NullSecretProvider()

def buildFdw(settings: Settings, logger: logging.Logger, runId: str, apiTransport=None) -> SheetsFdw:
    """
    Назначение:
        Собирает SheetsFdw с инфраструктурными адаптерами по настройкам.
    """

    def clientFactory() -> SheetsApiClient:
        return SheetsApiClient(
            timeoutSeconds=settings.timeout_seconds,
            retries=settings.retries,
            retryBackoffSeconds=settings.retry_backoff_seconds,
            transport=apiTransport,
            logger=logger,
            runId=runId,
        )

    return SheetsFdw(
        token_provider=ServiceAccountTokenProvider(logger=logger, runId=runId),
        client_factory=clientFactory,
        info_reporter=EchoInfoReporter(lambda message: typer.echo(message, err=True)),
        secret_provider=buildSecretProvider(settings),
        logger=logger,
        run_id=runId,
    )

def buildHostContext(
    settings: Settings,
    spreadSheetId: str,
    sheetId: str | None,
    saKeyId: str | None,
    columns: list[TargetColumn],
) -> StaticHostContext:
    serverOptions: dict[str, str] = {}
    if settings.base_url:
        serverOptions["base_url"] = settings.base_url
    saKey = readSaKey(settings)
    if saKey is not None:
        serverOptions["sa_key"] = saKey
    if saKeyId:
        serverOptions["sa_key_id"] = saKeyId

    tableOptions = {"spread_sheet_id": spreadSheetId}
    if sheetId is not None:
        tableOptions["sheet_id"] = sheetId

    return StaticHostContext(server_options=serverOptions, table_options=tableOptions, columns=columns)

def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов) в stderr.
    """
    typer.echo(
        f"run_id={runId} command={command} "
        f"base_url={settings.base_url or 'default'} sa_key_file={settings.sa_key_file} "
        f"vault_file={settings.vault_file} "
        f"retries={settings.retries} sources={sources}",
        err=True,
    )

def runWithReport(ctx: typer.Context, commandName: str, runner) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report.json skeleton
        - перенаправляет stdout/stderr в лог (tee)
        - AppError из runner пишет в лог и report, exit code 2
        - прочие исключения: status failed, код UNEXPECTED_ERROR, exit code 2
        - гарантирует запись отчёта в finally
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)

    originalStdout = sys.stdout
    originalStderr = sys.stderr

    sys.stdout = TeeStream(originalStdout, StdStreamToLogger(logger, logging.INFO, runId, "stdout"))
    sys.stderr = TeeStream(originalStderr, StdStreamToLogger(logger, logging.WARNING, runId, "stderr"))

    exitCode: int | None = None

    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)
        try:
            exitCode = runner(logger, report)
        except AppError as exc:
            logEvent(logger, logging.ERROR, runId, exc.category, f"{exc.code}: {exc.message}")
            recordError(report, exc.code, exc.message)
            typer.echo(f"ERROR: {exc.code}: {exc.message}", err=True)
            exitCode = 2
        except typer.Exit:
            raise
        except Exception as exc:
            logEvent(logger, logging.ERROR, runId, "core", f"Command failed: {exc!r}")
            recordError(report, ErrorCode.UNEXPECTED_ERROR.value, str(exc) or type(exc).__name__)
            typer.echo(f"ERROR: {commandName} failed (see logs/report)", err=True)
            exitCode = 2
    finally:
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        finalizeReport(report=report, durationMs=durationMs, logFile=logFilePath, reportDir=settings.report_dir)
        reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
        logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")

        sys.stdout = originalStdout
        sys.stderr = originalStderr
        closeCommandLogger(logger)

    if exitCode:
        raise typer.Exit(code=exitCode)

def formatRows(rows, columns: list[TargetColumn], outputFormat: str):
    names = [c.name for c in columns]
    if outputFormat == "csv":
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(names)
        yield buf.getvalue().rstrip("\n")
        for row in rows:
            buf.seek(0)
            buf.truncate()
            writer.writerow(["" if v is None else v for v in row.cells])
            yield buf.getvalue().rstrip("\n")
        return
    for row in rows:
        yield json.dumps(dict(zip(names, row.cells)), ensure_ascii=False)

def runScanCommand(
    ctx: typer.Context,
    spreadSheetId: str,
    sheetId: str | None,
    columnSpecs: list[str],
    saKeyId: str | None,
    outputFormat: str,
    apiTransport=None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    columns = parseColumns(columnSpecs)
    hostCtx = buildHostContext(settings, spreadSheetId, sheetId, saKeyId, columns)

    def execute(logger, report: Report) -> int:
        report.meta.spread_sheet_id = spreadSheetId
        report.meta.sheet_id = sheetId
        registerSecret(logger, hostCtx.server_options.get("sa_key"))
        fdw = buildFdw(settings, logger, runId, apiTransport)

        with HostSession(fdw, hostCtx) as session:
            state = session.state
            try:
                fdw.begin_scan(state, hostCtx)
            finally:
                report.summary.retries = state.fetch_retries
            report.summary.rows_fetched = state.cursor.row_count

            def rows():
                while True:
                    row = fdw.iter_scan(state, hostCtx)
                    if row is None:
                        return
                    report.summary.rows_emitted += 1
                    yield row

            for line in formatRows(rows(), columns, outputFormat):
                typer.echo(line)
            fdw.end_scan(state, hostCtx)

        logEvent(logger, logging.INFO, runId, "scan", f"scan done rows={report.summary.rows_emitted}")
        return 0

    runWithReport(ctx=ctx, commandName="scan", runner=execute)

def runCheckApiCommand(
    ctx: typer.Context,
    spreadSheetId: str,
    sheetId: str | None,
    saKeyId: str | None,
    apiTransport=None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    hostCtx = buildHostContext(settings, spreadSheetId, sheetId, saKeyId, [])

    def execute(logger, report: Report) -> int:
        report.meta.spread_sheet_id = spreadSheetId
        report.meta.sheet_id = sheetId
        registerSecret(logger, hostCtx.server_options.get("sa_key"))
        fdw = buildFdw(settings, logger, runId, apiTransport)

        with HostSession(fdw, hostCtx) as session:
            start = time.monotonic()
            fdw.begin_scan(session.state, hostCtx)
            latencyMs = int((time.monotonic() - start) * 1000)
            rowCount = session.state.cursor.row_count
            report.summary.rows_fetched = rowCount
            report.summary.retries = session.state.fetch_retries
            fdw.end_scan(session.state, hostCtx)

        logEvent(logger, logging.INFO, runId, "api", f"api ok rows={rowCount} latency_ms={latencyMs}")
        typer.echo(f"api ok rows={rowCount} latency_ms={latencyMs}")
        return 0

    runWithReport(ctx=ctx, commandName="check-api", runner=execute)

@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    baseUrl: str | None = typer.Option(None, "--base-url", help="Spreadsheets base URL"),
    saKeyFile: str | None = typer.Option(None, "--sa-key-file", help="Service account key JSON file"),
    vaultFile: str | None = typer.Option(None, "--vault-file", help="CSV dev vault with secrets"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="HTTP timeout in seconds"),
    retries: int | None = typer.Option(None, "--retries", help="Retry attempts for transient HTTP failures"),
    retryBackoffSeconds: float | None = typer.Option(None, "--retry-backoff-seconds", help="Base backoff for retries"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "base_url": baseUrl,
        "sa_key_file": saKeyFile,
        "vault_file": vaultFile,
        "timeout_seconds": timeoutSeconds,
        "retries": retries,
        "retry_backoff_seconds": retryBackoffSeconds,
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=2)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }

@app.command()
def scan(
    ctx: typer.Context,
    spreadSheetId: str = typer.Option(..., "--spread-sheet-id", help="Spreadsheet id"),
    sheetId: str | None = typer.Option(None, "--sheet-id", help="Sheet gid inside the spreadsheet"),
    column: list[str] = typer.Option(..., "--column", help="Target column NAME:TYPE[:NUM] (NUM: source column, 1-based; default: position)"),
    saKeyId: str | None = typer.Option(None, "--sa-key-id", help="Vault secret name with the service account key"),
    outputFormat: str = typer.Option("jsonl", "--format", help="Output format: jsonl|csv"),
):
    if outputFormat not in ("jsonl", "csv"):
        raise typer.BadParameter("format must be jsonl or csv", param_hint="--format")
    runScanCommand(ctx, spreadSheetId, sheetId, column, saKeyId, outputFormat)

@app.command("check-api")
def checkApi(
    ctx: typer.Context,
    spreadSheetId: str = typer.Option(..., "--spread-sheet-id", help="Spreadsheet id"),
    sheetId: str | None = typer.Option(None, "--sheet-id", help="Sheet gid inside the spreadsheet"),
    saKeyId: str | None = typer.Option(None, "--sa-key-id", help="Vault secret name with the service account key"),
):
    runCheckApiCommand(ctx, spreadSheetId, sheetId, saKeyId)

@vaultApp.command("put")
def vaultPut(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Secret name"),
    valueFile: str = typer.Option(..., "--value-file", help="File with the secret value"),
):
    settings: Settings = ctx.obj["settings"]
    if not settings.vault_file:
        typer.echo("ERROR: --vault-file is required", err=True)
        raise typer.Exit(code=2)
    p = Path(valueFile)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: value file not found: {valueFile}", err=True)
        raise typer.Exit(code=2)
    FileVaultSecretStore(settings.vault_file).put(
        name=name,
        value=p.read_text(encoding="utf-8"),
        run_id=ctx.obj["runId"],
    )
    typer.echo(f"secret stored name={name} vault_file={settings.vault_file}")

app.add_typer(vaultApp, name="vault")
