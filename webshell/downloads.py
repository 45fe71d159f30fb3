"""
Перехват загрузок: файл всегда сохраняется в фиксированную папку, под
очищенным и уникальным именем. Политика ``auto`` сохраняет молча,
``prompt`` сначала спрашивает имя (отмена диалога = отмена загрузки).
"""
from __future__ import annotations

import enum
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from webshell.errors import DownloadNamingError

log = logging.getLogger(__name__)

FALLBACK_NAME = "download"
MAX_UNIQUE_ATTEMPTS = 10_000

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_RESERVED_NAMES = {"CON", "PRN", "AUX", "NUL"} | {f"COM{i}" for i in range(1, 10)} | {f"LPT{i}" for i in range(1, 10)}


class DownloadPolicy(enum.Enum):
    AUTO = "auto"
    PROMPT = "prompt"


@dataclass
class DownloadRequest:
    suggested_name: str
    target_directory: Path


@dataclass
class DownloadDecision:
    path: Optional[Path]

    @property
    def cancelled(self) -> bool:
        return self.path is None


# ---------- Имена файлов ----------

def sanitize_filename(name: Optional[str], fallback: str = FALLBACK_NAME) -> str:
    cleaned = _INVALID_CHARS.sub("_", (name or "").strip())
    # Windows не любит точки и пробелы в конце имени
    cleaned = cleaned.rstrip(" .")
    if not cleaned:
        return fallback
    if cleaned.split(".", 1)[0].upper() in _RESERVED_NAMES:
        cleaned = "_" + cleaned
    return cleaned


def inherit_extension(entered: str, suggested: str) -> str:
    """'myfile' + 'myfile.csv' -> 'myfile.csv'; an explicit extension is kept."""
    if os.path.splitext(entered)[1]:
        return entered
    return entered + os.path.splitext(suggested)[1]


def unique_path(directory: Path, name: str, max_attempts: int = MAX_UNIQUE_ATTEMPTS) -> Path:
    candidate = directory / name
    if not candidate.exists():
        return candidate
    stem, ext = os.path.splitext(name)
    for n in range(1, max_attempts + 1):
        candidate = directory / f"{stem} ({n}){ext}"
        if not candidate.exists():
            return candidate
    log.warning("[DL] no free name for %s after %d attempts; overwriting", name, max_attempts)
    return directory / name


# ---------- Перехватчик ----------

class DownloadInterceptor:
    """
    target_directory: фиксированная папка загрузок.
    prompt: callable(suggested_name) -> str | None; нужен только для PROMPT.
    """

    def __init__(self, target_directory: Path, policy: DownloadPolicy = DownloadPolicy.PROMPT,
                 prompt: Optional[Callable[[str], Optional[str]]] = None):
        if policy is DownloadPolicy.PROMPT and prompt is None:
            raise ValueError("prompt policy needs a prompt callable")
        self.target_directory = Path(target_directory)
        self.policy = policy
        self._prompt = prompt

    def decide(self, suggested_path: str) -> DownloadDecision:
        request = DownloadRequest(
            suggested_name=os.path.basename(suggested_path or "") or FALLBACK_NAME,
            target_directory=self.target_directory,
        )
        try:
            path = self._resolve(request)
        except (DownloadNamingError, OSError) as e:
            log.error("[DL] cancelled %s: %s", request.suggested_name, e)
            return DownloadDecision(None)
        if path is None:
            log.info("[DL] cancelled by user: %s", request.suggested_name)
        else:
            log.info("[DL] %s -> %s", request.suggested_name, path)
        return DownloadDecision(path)

    def _resolve(self, request: DownloadRequest) -> Optional[Path]:
        suggested = sanitize_filename(request.suggested_name)
        if self.policy is DownloadPolicy.PROMPT:
            entered = self._prompt(suggested)
            if entered is None or not entered.strip():
                return None
            name = inherit_extension(sanitize_filename(entered), suggested)
        else:
            name = suggested
        self._ensure_directory(request.target_directory)
        return unique_path(request.target_directory, name)

    @staticmethod
    def _ensure_directory(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadNamingError(f"cannot create {directory}: {e}") from e
        if not directory.is_dir():
            raise DownloadNamingError(f"{directory} is not a directory")
