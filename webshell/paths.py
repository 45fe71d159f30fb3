# webshell/paths.py: пути бандла, ассетов и пользовательских данных (dev/заморозка)
from __future__ import annotations

import os
import sys
from pathlib import Path

from PyQt5.QtCore import QStandardPaths

APP_DIR_NAME = "WebShellLauncher"


def bundle_base() -> Path:
    """Папка рядом с .exe (frozen) или корень исходников."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path(__file__).resolve().parent.parent


def asset_path(rel: str) -> Path:
    # onefile-сборка распаковывает ассеты в _MEIPASS
    base = Path(getattr(sys, "_MEIPASS", str(bundle_base())))
    return base / "assets" / rel.replace("/", os.sep)


def user_data_root(profile: str = "DefaultProfile") -> Path:
    local = Path(os.getenv("LOCALAPPDATA") or (Path.home() / ".local" / "share"))
    return local / APP_DIR_NAME / profile


def logs_dir() -> Path:
    return user_data_root() / "logs"


def downloads_dir() -> Path:
    """Фиксированная папка загрузок; пользователь её не выбирает."""
    loc = QStandardPaths.writableLocation(QStandardPaths.DownloadLocation)
    return Path(loc) if loc else Path.home() / "Downloads"
