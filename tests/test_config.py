# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from config import Settings
from logging_setup import setup_logging


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "TASKFLOW_SECRET_KEY",
        "SECRET_KEY",
        "TASKFLOW_DATABASE_URI",
        "TASKFLOW_DATA_DIR",
        "TASKFLOW_LOG_LEVEL",
        "TASKFLOW_PAGE_SIZE",
        "TASKFLOW_MAX_PAGE_SIZE",
        "TASKFLOW_QUERY_DELAY_MS",
        "TASKFLOW_SEED_DEMO",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASKFLOW_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.data_dir == tmp_path
    assert s.database_uri == f"sqlite:///{(tmp_path / 'taskflow.db').resolve()}"
    assert s.page_size == 8
    assert s.query_delay_ms == 0
    assert s.seed_demo is True
    assert s.log_level == "INFO"


def test_settings_from_env_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASKFLOW_DATA_DIR", str(tmp_path))
    clean_env.setenv("SECRET_KEY", "from-plain-env")
    clean_env.setenv("TASKFLOW_DATABASE_URI", "sqlite:///elsewhere.db")
    clean_env.setenv("TASKFLOW_PAGE_SIZE", "12")
    clean_env.setenv("TASKFLOW_QUERY_DELAY_MS", "not-a-number")
    clean_env.setenv("TASKFLOW_SEED_DEMO", "no")
    clean_env.setenv("TASKFLOW_LOG_LEVEL", "debug")

    s = Settings.from_env()

    assert s.secret_key == "from-plain-env"
    assert s.database_uri == "sqlite:///elsewhere.db"
    assert s.page_size == 12
    assert s.query_delay_ms == 0
    assert s.seed_demo is False
    assert s.log_level == "DEBUG"


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)


def test_setup_logging_writes_debug_to_log_file(tmp_path: Path, restore_root_logger) -> None:
    log_file = setup_logging(level=logging.WARNING, log_dir=tmp_path / "logs")
    logging.getLogger("task_store").debug("hello from the test")
    for h in restore_root_logger.handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / "taskflow.log"
    assert "DEBUG task_store: hello from the test" in log_file.read_text("utf-8")


def test_setup_logging_replaces_handlers_and_quiets_sqlalchemy(restore_root_logger) -> None:
    assert setup_logging(level="INFO") is None
    setup_logging(level="INFO")

    (console,) = restore_root_logger.handlers
    assert console.level == logging.INFO
    assert logging.getLogger("sqlalchemy").level == logging.WARNING
