from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from sheets_fdw.common.sanitize import maskSecret

LOG_FORMAT = "%(asctime)s %(levelname)s runId=%(runId)s comp=%(component)s msg=%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+")
_PRIVATE_KEY_RE = re.compile(
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----",
    re.DOTALL,
)


def redactSecrets(text: str, secrets: Iterable[str] = ()) -> str:
    """
    Назначение:
        Убирает из текста bearer token, PEM private key и явно известные секреты.
    """
    for secret in secrets:
        if secret and secret in text:
            text = text.replace(secret, maskSecret(secret))
    text = _PRIVATE_KEY_RE.sub(maskSecret("key"), text)
    return _BEARER_RE.sub(lambda m: m.group(1) + maskSecret(m.group(0)), text)


class EnsureFieldsFilter(logging.Filter):
    """Подставляет runId и component, если запись пришла без них."""

    def __init__(self, runId: str, defaultComponent: str = "core"):
        super().__init__()
        self.runId = runId
        self.defaultComponent = defaultComponent

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "runId"):
            record.runId = self.runId
        if not hasattr(record, "component"):
            record.component = self.defaultComponent
        return True


class RedactSecretsFilter(logging.Filter):
    """
    Назначение:
        Гарантирует, что ключ сервисного аккаунта и bearer token не попадают в лог.
    Контракт:
        Сообщение записи переписывается уже отформатированным (args сбрасываются).
        Секреты, известные по значению (содержимое sa_key), добавляются через addSecret.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: set[str] = {s for s in secrets if s}

    def addSecret(self, value: str | None) -> None:
        if value:
            self.secrets.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redactSecrets(message, self.secrets)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class StdStreamToLogger:
    """Файлоподобный объект: построчно пишет вывод stdout/stderr в логгер."""

    def __init__(self, logger: logging.Logger, level: int, runId: str, component: str):
        self.logger = logger
        self.level = level
        self.runId = runId
        self.component = component
        self.buffer = ""

    def _emit(self, line: str) -> None:
        self.logger.log(self.level, line, extra={"runId": self.runId, "component": self.component})

    def write(self, s: str) -> int:
        if not s:
            return 0
        self.buffer += s
        *lines, self.buffer = self.buffer.split("\n")
        for line in lines:
            if line.strip():
                self._emit(line.rstrip())
        return len(s)

    def flush(self) -> None:
        if self.buffer.strip():
            self._emit(self.buffer.rstrip())
        self.buffer = ""


class TeeStream:
    """Пишет одновременно в исходный поток и в StdStreamToLogger."""

    def __init__(self, primary, secondary):
        self.primary = primary
        self.secondary = secondary

    def write(self, s: str) -> int:
        written = self.primary.write(s)
        self.secondary.write(s)
        return written

    def flush(self) -> None:
        self.primary.flush()
        self.secondary.flush()


_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def mapLogLevel(levelName: str) -> int:
    """ERROR|WARN|INFO|DEBUG -> уровень logging; иначе ValueError."""
    level = _LEVELS.get((levelName or "").strip().upper())
    if level is None:
        raise ValueError(f"Unsupported log level: {levelName}")
    return level


def createCommandLogger(commandName: str, logDir: str, runId: str, logLevel: str) -> tuple[logging.Logger, str]:
    """
    Назначение:
        Логгер одной команды CLI с файлом <logDir>/<command>_<runId>.log.

    Поведение:
        - Логгер изолирован (propagate=False), повторный вызов пересоздаёт handlers.
        - На handler навешены EnsureFieldsFilter и RedactSecretsFilter.

    Выходные данные:
        (logger, logFilePath)
    """
    Path(logDir).mkdir(parents=True, exist_ok=True)
    logFilePath = str(Path(logDir) / f"{commandName}_{runId}.log")

    logger = logging.getLogger(f"sheetsFdw.{commandName}.{runId}")
    closeCommandLogger(logger)
    logger.propagate = False

    level = mapLogLevel(logLevel)
    logger.setLevel(level)

    fileHandler = logging.FileHandler(logFilePath, encoding="utf-8")
    fileHandler.setLevel(level)
    fileHandler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    fileHandler.addFilter(EnsureFieldsFilter(runId=runId))
    fileHandler.addFilter(RedactSecretsFilter())
    logger.addHandler(fileHandler)

    return logger, logFilePath


def registerSecret(logger: logging.Logger, value: str | None) -> None:
    """Добавляет значение секрета во все RedactSecretsFilter на handlers логгера."""
    for handler in logger.handlers:
        for flt in handler.filters:
            if isinstance(flt, RedactSecretsFilter):
                flt.addSecret(value)


def closeCommandLogger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def logEvent(logger: logging.Logger, level: int, runId: str, component: str, message: str) -> None:
    logger.log(level, message, extra={"runId": runId, "component": component})
