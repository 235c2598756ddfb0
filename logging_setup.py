from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_FILENAME = "taskflow.log"

# Each query is logged by sqlalchemy.engine at INFO when echo is on.
QUIET_LOGGERS = ("sqlalchemy",)


def setup_logging(*, level: int | str = logging.INFO, log_dir: str | Path | None = None) -> Path | None:
    """
    Log to stderr at `level`. With a `log_dir`, also keep a DEBUG log in
    <log_dir>/taskflow.log and return its path.

    Called once from main(); replaces whatever handlers the root logger has.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setLevel(level)
    handlers: list[logging.Handler] = [console]

    log_file = None
    if log_dir is not None:
        log_file = Path(log_dir) / LOG_FILENAME
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file
