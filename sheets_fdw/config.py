from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import yaml


@dataclass(frozen=True)
class Settings:
    # Source
    base_url: str | None = None
    sa_key_file: str | None = None
    vault_file: str | None = None

    # HTTP
    timeout_seconds: float = 30.0
    retries: int = 3
    retry_backoff_seconds: float = 0.5

    # Paths / logging
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


_ENV_NAMES = {
    "base_url": "SHEETS_FDW_BASE_URL",
    "sa_key_file": "SHEETS_FDW_SA_KEY_FILE",
    "vault_file": "SHEETS_FDW_VAULT_FILE",
    "timeout_seconds": "SHEETS_FDW_TIMEOUT_SECONDS",
    "retries": "SHEETS_FDW_RETRIES",
    "retry_backoff_seconds": "SHEETS_FDW_RETRY_BACKOFF_SECONDS",
    "log_dir": "SHEETS_FDW_LOG_DIR",
    "report_dir": "SHEETS_FDW_REPORT_DIR",
    "log_level": "SHEETS_FDW_LOG_LEVEL",
}


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _parse_int(name: str, v: str) -> int:
    try:
        return int(v)
    except ValueError as exc:
        raise ValueError(f"Invalid integer env value for {name}: {v}") from exc


def _parse_float(name: str, v: str) -> float:
    try:
        return float(v)
    except ValueError as exc:
        raise ValueError(f"Invalid float env value for {name}: {v}") from exc


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    merged = {name: cfg.get(name, getattr(defaults, name)) for name in _ENV_NAMES}

    # 2) env
    env = {name: _env_get(env_name) for name, env_name in _ENV_NAMES.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    for name, value in env.items():
        if value is None:
            continue
        if name == "retries":
            merged[name] = _parse_int(_ENV_NAMES[name], value)
        elif name in ("timeout_seconds", "retry_backoff_seconds"):
            merged[name] = _parse_float(_ENV_NAMES[name], value)
        else:
            merged[name] = value

    # 3) apply CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    settings = Settings(
        base_url=merged["base_url"],
        sa_key_file=merged["sa_key_file"],
        vault_file=merged["vault_file"],
        timeout_seconds=float(merged["timeout_seconds"]),
        retries=int(merged["retries"]),
        retry_backoff_seconds=float(merged["retry_backoff_seconds"]),
        log_dir=merged["log_dir"],
        report_dir=merged["report_dir"],
        log_level=merged["log_level"],
    )

    return LoadedSettings(settings=settings, sources_used=sources)
