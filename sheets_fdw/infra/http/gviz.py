from __future__ import annotations

import json
from typing import Any

from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.errors import ParseError

# Префикс против JSON hijacking, который источник ставит перед телом ответа.
RESPONSE_PREFIX = ")]}'\n"


def build_query_url(base_url: str, spread_sheet_id: str, sheet_id: str | None = None) -> str:
    """
    Назначение:
        Собирает URL запроса gviz для таблицы и (опционально) листа.

    Выходные данные:
        str
            {base_url}/{spread_sheet_id}/gviz/tq?tqx=out:json[&gid={sheet_id}]
    """
    url = f"{base_url.rstrip('/')}/{spread_sheet_id}/gviz/tq?tqx=out:json"
    if sheet_id is not None:
        url += f"&gid={sheet_id}"
    return url


def strip_prefix(body: str) -> str:
    if not body.startswith(RESPONSE_PREFIX):
        raise ParseError(
            "invalid response: missing gviz prefix",
            code=ErrorCode.UNEXPECTED_FORMAT,
        )
    return body[len(RESPONSE_PREFIX):]


def parse_rows(body: str) -> list[Any]:
    """
    Назначение:
        Разбирает тело ответа gviz и возвращает массив строк table.rows.

    Алгоритм:
        - Снять точный префикс ")]}'\\n" (нет префикса: UNEXPECTED_FORMAT).
        - json.loads остатка (ошибка: INVALID_JSON).
        - Взять table.rows (нет или не массив: MISSING_ROWS).

    Ограничения:
        Отдельные строки не валидируются: это делает курсор на каждом шаге.
    """
    payload = strip_prefix(body)
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise ParseError(f"invalid JSON in response: {exc}", code=ErrorCode.INVALID_JSON) from exc

    table = data.get("table") if isinstance(data, dict) else None
    rows = table.get("rows") if isinstance(table, dict) else None
    if not isinstance(rows, list):
        raise ParseError("cannot get rows from response", code=ErrorCode.MISSING_ROWS)
    return rows
