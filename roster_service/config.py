from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class ApiConfig:
    base_url: str
    api_key: str


@dataclass(frozen=True)
class RuntimeConfig:
    artifact_root: Path
    db_path: Path | None
    log_level: str


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def runtime_config() -> RuntimeConfig:
    artifact_root = Path(os.getenv("ROSTER_ARTIFACT_DIR", "./artifacts")).expanduser().resolve()
    db_path = os.getenv("ROSTER_DB_PATH", "").strip()
    log_level = os.getenv("ROSTER_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    artifact_root.mkdir(parents=True, exist_ok=True)
    return RuntimeConfig(
        artifact_root=artifact_root,
        db_path=Path(db_path).expanduser() if db_path else None,
        log_level=log_level,
    )


def api_config() -> ApiConfig:
    base_url = os.getenv("ROSTER_API_URL", "").strip().rstrip("/")
    api_key = os.getenv("ROSTER_API_KEY", "").strip()
    missing = [name for name, value in (("ROSTER_API_URL", base_url), ("ROSTER_API_KEY", api_key)) if not value]
    if missing:
        raise ValueError(f"Missing hospital backend settings: {', '.join(missing)}")
    return ApiConfig(base_url=base_url, api_key=api_key)
