from __future__ import annotations

import logging
from typing import Callable

from sheets_fdw.domain.ports.host import InfoReporterProtocol
from sheets_fdw.infra.logging.setup import logEvent


class LoggerInfoReporter(InfoReporterProtocol):
    """
    Назначение:
        Информационный канал поверх логгера (уровень INFO, component=info).
    """

    def __init__(self, logger: logging.Logger | None = None, runId: str = "-"):
        self.logger = logger or logging.getLogger("sheets_fdw.info")
        self.runId = runId

    def report_info(self, message: str) -> None:
        logEvent(self.logger, logging.INFO, self.runId, "info", message)


class EchoInfoReporter(InfoReporterProtocol):
    """
    Назначение:
        Пишет сообщения оператору через функцию вывода (в CLI: typer.echo в stderr).
    """

    def __init__(self, echo: Callable[[str], None]):
        self.echo = echo

    def report_info(self, message: str) -> None:
        self.echo(f"INFO: {message}")
