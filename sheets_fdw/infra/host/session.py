from __future__ import annotations

from typing import Iterator

from sheets_fdw.domain.models import ConnectorState, TargetRow
from sheets_fdw.domain.ports.host import HostContextProtocol
from sheets_fdw.domain.scan.cursor import ScanState
from sheets_fdw.usecases.sheets_fdw import SheetsFdw


class HostSession:
    """
    Назначение/ответственность:
        Сессия хоста: владеет ConnectorState и проводит вызовы жизненного
        цикла в фиксированном порядке (init -> begin -> iter* -> end).
    Инварианты/гарантии:
        - ConnectorState создаётся при входе в with и освобождается при выходе.
        - Незавершённый скан закрывается (end_scan) при выходе из with.
    """

    def __init__(self, fdw: SheetsFdw, ctx: HostContextProtocol):
        self.fdw = fdw
        self.ctx = ctx
        self.state: ConnectorState | None = None

    def __enter__(self) -> "HostSession":
        self.state = self.fdw.init(self.ctx)
        return self

    def __exit__(self, *exc_info) -> None:
        if self.state is not None and self.state.cursor.state is not ScanState.IDLE:
            self.fdw.end_scan(self.state, self.ctx)
        self.state = None

    def _require_state(self) -> ConnectorState:
        if self.state is None:
            raise RuntimeError("host session is not open")
        return self.state

    def scan(self) -> Iterator[TargetRow]:
        """
        Назначение:
            Полный проход: begin_scan, iter_scan до конца данных, end_scan.
        """
        state = self._require_state()
        self.fdw.begin_scan(state, self.ctx)
        try:
            while True:
                row = self.fdw.iter_scan(state, self.ctx)
                if row is None:
                    break
                yield row
        finally:
            self.fdw.end_scan(state, self.ctx)
