from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from sheets_fdw.common.time import getNowIso
from sheets_fdw.domain.ports.secrets import SecretProviderProtocol, SecretStoreProtocol


_FIELDNAMES = ["name", "value", "run_id", "updated_at"]


class FileVaultSecretStore(SecretStoreProtocol):
    """
    Назначение:
        Запись секретов в CSV-файл (dev vault). Файл только дописывается.
    """

    def __init__(self, path: str):
        self._path = Path(path)

    def put(self, *, name: str, value: str, run_id: str | None = None) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not self._path.exists()
        with self._path.open("a", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=_FIELDNAMES)
            if needs_header:
                writer.writeheader()
            writer.writerow(
                {
                    "name": name,
                    "value": value,
                    "run_id": run_id or "",
                    "updated_at": getNowIso(),
                }
            )


class FileVaultSecretProvider(SecretProviderProtocol):
    """
    Назначение:
        Чтение секретов из CSV-файла (dev vault).
    Алгоритм:
        При нескольких записях с одним именем побеждает последняя.
    """

    def __init__(self, path: str):
        self._path = Path(path)

    def get_secret(self, *, name: str) -> str | None:
        if not self._path.exists():
            return None
        best = None
        for row in _read_rows(self._path):
            if row.get("name") == name:
                best = row
        if best is None:
            return None
        return best.get("value")


def _read_rows(path: Path) -> Iterable[dict[str, str]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            if not row:
                continue
            yield row
