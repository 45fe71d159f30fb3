from __future__ import annotations

import logging
import logging.handlers
import sys
import traceback
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "launcher.log"
CRASH_FILE_NAME = "launcher_crash.log"

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(process)d %(threadName)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def setup_logging(log_dir: Path, dev_console: bool = False) -> Optional[Path]:
    """Лог-файл с ротацией + консоль в dev-режиме.

    Returns the log file path, or None when the directory cannot be created
    (then only the console handler is installed, if any).
    """
    root = logging.getLogger()
    root.handlers[:] = []
    root.setLevel(logging.INFO)

    log_path: Optional[Path] = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILE_NAME
        fh = logging.handlers.RotatingFileHandler(
            str(log_path), maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8", delay=True
        )
        fh.setFormatter(logging.Formatter(FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        fh.setLevel(logging.INFO)
        root.addHandler(fh)
    except OSError:
        log_path = None

    if dev_console:
        stream = sys.stdout if getattr(sys, "stdout", None) is not None else sys.__stdout__
        if stream is not None and hasattr(stream, "write"):
            sh = logging.StreamHandler(stream)
            sh.setFormatter(logging.Formatter(CONSOLE_FORMAT, "%H:%M:%S"))
            sh.setLevel(logging.INFO)
            root.addHandler(sh)

    # сбой записи в лог не должен ронять лаунчер
    logging.raiseExceptions = False
    for noisy in ("urllib3", "requests"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return log_path


def install_excepthook(crash_path: Path) -> None:
    def _excepthook(exc_type, exc, tb):
        logging.getLogger("crash").error("Uncaught: %s", exc, exc_info=(exc_type, exc, tb))
        try:
            with open(crash_path, "a", encoding="utf-8") as f:
                traceback.print_exception(exc_type, exc, tb, file=f)
        except OSError:
            pass
    sys.excepthook = _excepthook
