"""Settings loaded from environment variables (+ optional .env).

One frozen Settings object for the whole app. Nothing secret is required at
import time; every value has a development default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- Flask ----
    secret_key: str = "dev-secret-key-change-me"
    database_uri: str = "sqlite:///taskflow.db"

    # ---- Local data / logging ----
    data_dir: Path = Path(".local/taskflow")
    log_level: str = "INFO"

    # ---- Task listing ----
    page_size: int = 8
    max_page_size: int = 100
    # Cosmetic latency for the list endpoint, mimics a slow backend.
    query_delay_ms: int = 0

    # ---- Bootstrap ----
    seed_demo: bool = True

    @staticmethod
    def from_env() -> "Settings":
        load_dotenv(override=False)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        default_db = f"sqlite:///{(data_dir / 'taskflow.db').resolve()}"

        return Settings(
            secret_key=_first_env(_k("SECRET_KEY"), "SECRET_KEY", default="dev-secret-key-change-me")
            or "dev-secret-key-change-me",
            database_uri=_env(_k("DATABASE_URI"), default_db),
            data_dir=data_dir,
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            page_size=max(1, _env_int(_k("PAGE_SIZE"), 8)),
            max_page_size=max(1, _env_int(_k("MAX_PAGE_SIZE"), 100)),
            query_delay_ms=max(0, _env_int(_k("QUERY_DELAY_MS"), 0)),
            seed_demo=_env_bool(_k("SEED_DEMO"), True),
        )


def get_settings() -> Settings:
    return Settings.from_env()
