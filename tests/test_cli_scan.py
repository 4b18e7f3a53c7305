from __future__ import annotations

import json
from pathlib import Path

import httpx
from typer.testing import CliRunner

import sheets_fdw.cli as cli_module
from sheets_fdw.cli import app
from sheets_fdw.domain.error_codes import ErrorCode
from sheets_fdw.domain.models import AccessToken
from sheets_fdw.errors import AuthError
from sheets_fdw.infra.http.gviz import RESPONSE_PREFIX
from sheets_fdw.infra.http.sheets_client import SheetsApiClient

runner = CliRunner()

ROWS = [
    {"c": [{"v": 1.0, "f": "1"}, {"v": "Erlich Bachman"}]},
    {"c": [{"v": 2.0, "f": "2"}, {"v": "Richard Hendricks"}]},
    {"c": [{"v": 3.0, "f": "3"}, {"v": None}]},
]


def gviz_response(rows=ROWS) -> httpx.Response:
    return httpx.Response(200, text=RESPONSE_PREFIX + json.dumps({"table": {"rows": rows}}))


class StubTokenProvider:
    def __init__(self, **kwargs):
        pass

    def acquire(self, sa_key):
        return AccessToken(token="tok-cli")


class FailingTokenProvider(StubTokenProvider):
    def acquire(self, sa_key):
        raise AuthError("cannot exchange service account key", code=ErrorCode.TOKEN_EXCHANGE_FAILED)


def patch_client_with_transport(monkeypatch, responder, tokenProvider=StubTokenProvider):
    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(responder)
        return SheetsApiClient(*args, **kwargs)

    monkeypatch.setattr(cli_module, "SheetsApiClient", factory)
    monkeypatch.setattr(cli_module, "ServiceAccountTokenProvider", tokenProvider)


def base_args(tmp_path: Path) -> list[str]:
    saKey = tmp_path / "sa.json"
    saKey.write_text('{"type": "service_account"}', encoding="utf-8")
    return [
        "--run-id", "r1",
        "--log-dir", str(tmp_path / "logs"),
        "--report-dir", str(tmp_path / "reports"),
        "--base-url", "https://sheets.local/d",
        "--sa-key-file", str(saKey),
        "--retries", "1",
        "--retry-backoff-seconds", "0",
    ]


def read_report(tmp_path: Path, command: str) -> dict:
    return json.loads((tmp_path / "reports" / f"report_{command}_r1.json").read_text(encoding="utf-8"))


def test_scan_prints_jsonl_rows_and_writes_report(tmp_path, monkeypatch):
    requests: list[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return gviz_response()

    patch_client_with_transport(monkeypatch, responder)

    result = runner.invoke(
        app,
        base_args(tmp_path) + [
            "scan",
            "--spread-sheet-id", "abc123",
            "--sheet-id", "7",
            "--column", "id:bigint",
            "--column", "name:text",
        ],
    )

    assert result.exit_code == 0, result.output
    rows = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert rows == [
        {"id": 1, "name": "Erlich Bachman"},
        {"id": 2, "name": "Richard Hendricks"},
        {"id": 3, "name": None},
    ]
    assert "INFO: We got response array length: 3" in result.output
    assert requests[0].url.path == "/d/abc123/gviz/tq"
    assert requests[0].url.params["gid"] == "7"
    assert requests[0].headers["authorization"] == "Bearer tok-cli"

    report = read_report(tmp_path, "scan")
    assert report["summary"]["status"] == "ok"
    assert report["summary"]["rows_fetched"] == 3
    assert report["summary"]["rows_emitted"] == 3
    assert report["meta"]["spread_sheet_id"] == "abc123"
    assert report["meta"]["sheet_id"] == "7"
    assert (tmp_path / "logs" / "scan_r1.log").exists()


def test_scan_csv_output(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: gviz_response())

    result = runner.invoke(
        app,
        base_args(tmp_path) + [
            "scan",
            "--spread-sheet-id", "abc123",
            "--column", "name:text:2",
            "--column", "id:bigint:1",
            "--format", "csv",
        ],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "name,id" in lines
    assert "Erlich Bachman,1" in lines
    assert ",3" in lines
    assert read_report(tmp_path, "scan")["summary"]["rows_emitted"] == 3


def test_scan_http_error_exits_2_with_failed_report(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: httpx.Response(404, text="not found"))

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "missing", "--column", "id:bigint"],
    )

    assert result.exit_code == 2
    assert "ERROR: HTTP_STATUS" in result.output
    report = read_report(tmp_path, "scan")
    assert report["summary"]["status"] == "failed"
    assert report["summary"]["error_code"] == "HTTP_STATUS"


def test_scan_retries_are_reported(tmp_path, monkeypatch):
    responses = [httpx.Response(503, text="busy"), gviz_response()]

    def responder(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    patch_client_with_transport(monkeypatch, responder)

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "id:bigint"],
    )

    assert result.exit_code == 0, result.output
    assert read_report(tmp_path, "scan")["summary"]["retries"] == 1


def test_scan_unsupported_column_type_fails(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: gviz_response())

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "born:date"],
    )

    assert result.exit_code == 2
    assert "column born data type is not supported" in result.output
    assert read_report(tmp_path, "scan")["summary"]["error_code"] == "UNSUPPORTED_COLUMN_TYPE"


def test_scan_auth_failure_does_not_call_api(tmp_path, monkeypatch):
    calls: list[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return gviz_response()

    patch_client_with_transport(monkeypatch, responder, tokenProvider=FailingTokenProvider)

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "id:bigint"],
    )

    assert result.exit_code == 2
    assert "ERROR: TOKEN_EXCHANGE_FAILED" in result.output
    assert calls == []


def test_scan_missing_sa_key_file_exits_2(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: gviz_response())

    result = runner.invoke(
        app,
        [
            "--sa-key-file", str(tmp_path / "absent.json"),
            "--log-dir", str(tmp_path / "logs"),
            "--report-dir", str(tmp_path / "reports"),
            "scan",
            "--spread-sheet-id", "abc123",
            "--column", "id:bigint",
        ],
    )

    assert result.exit_code == 2
    assert "sa-key-file not found" in result.output


def test_check_api_reports_row_count(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: gviz_response())

    result = runner.invoke(app, base_args(tmp_path) + ["check-api", "--spread-sheet-id", "abc123"])

    assert result.exit_code == 0, result.output
    assert "api ok rows=3" in result.output
    report = read_report(tmp_path, "check-api")
    assert report["summary"]["status"] == "ok"
    assert report["summary"]["rows_fetched"] == 3


class BrokenTokenProvider(StubTokenProvider):
    def acquire(self, sa_key):
        raise RuntimeError("token cache corrupted")


def test_scan_unexpected_failure_is_reported_as_failed(tmp_path, monkeypatch):
    patch_client_with_transport(monkeypatch, lambda request: gviz_response(), tokenProvider=BrokenTokenProvider)

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "id:bigint"],
    )

    assert result.exit_code == 2
    assert "ERROR: scan failed" in result.output
    report = read_report(tmp_path, "scan")
    assert report["summary"]["status"] == "failed"
    assert report["summary"]["error_code"] == "UNEXPECTED_ERROR"
    assert report["summary"]["error_message"] == "token cache corrupted"


def test_scan_redirect_loop_exits_2_with_network_error(tmp_path, monkeypatch):
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    patch_client_with_transport(monkeypatch, responder)

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "id:bigint"],
    )

    assert result.exit_code == 2
    assert "ERROR: NETWORK_ERROR" in result.output
    report = read_report(tmp_path, "scan")
    assert report["summary"]["status"] == "failed"
    assert report["summary"]["error_code"] == "NETWORK_ERROR"


def test_scan_failing_midway_records_rows_already_emitted(tmp_path, monkeypatch):
    rows = [
        {"c": [{"v": 1.0}, {"v": "Erlich Bachman"}]},
        {"c": [{"v": "two"}, {"v": "Richard Hendricks"}]},
        {"c": [{"v": 3.0}, {"v": "Gilfoyle"}]},
    ]
    patch_client_with_transport(monkeypatch, lambda request: gviz_response(rows))

    result = runner.invoke(
        app,
        base_args(tmp_path) + ["scan", "--spread-sheet-id", "abc123", "--column", "id:bigint", "--column", "name:text"],
    )

    assert result.exit_code == 2
    printed = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert printed == [{"id": 1, "name": "Erlich Bachman"}]
    summary = read_report(tmp_path, "scan")["summary"]
    assert summary["status"] == "failed"
    assert summary["error_code"] == "UNSUPPORTED_CONVERSION"
    assert summary["rows_fetched"] == 3
    assert summary["rows_emitted"] == 1
