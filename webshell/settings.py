"""
Настройки лаунчера (appsettings.json).

Файл читается один раз при старте. Любая проблема с файлом (нет файла,
битый JSON, не тот тип значения) даёт настройки по умолчанию, а не ошибку.
Ключи сравниваются без учёта регистра, '_' и '-': ``AppUrl``, ``app_url``
и ``appurl`` означают одно и то же.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from webshell.errors import ConfigError
from webshell.paths import bundle_base

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "appsettings.json"
CONFIG_ENV = "WEBSHELL_CONFIG"

DOWNLOAD_POLICIES = ("prompt", "auto")

_DURATIONS = ("max_wait_seconds", "poll_seconds", "request_timeout_seconds")
_SIZES = ("width", "height", "min_width", "min_height")


@dataclass(frozen=True)
class Credential:
    user: str
    password: str

    @staticmethod
    def from_pair(user: Optional[str], password: Optional[str]) -> Optional["Credential"]:
        """None, если хотя бы одно из полей пустое."""
        if not (user or "").strip() or not (password or "").strip():
            return None
        return Credential(user, password)

    def __repr__(self) -> str:
        return f"Credential(user={self.user!r}, password='***')"


@dataclass(frozen=True)
class LaunchConfig:
    app_url: str = "https://example.com"
    max_wait_seconds: int = 300
    poll_seconds: int = 4
    request_timeout_seconds: int = 5

    window_title: str = "WebApp Desktop Client"
    width: int = 1200
    height: int = 800
    min_width: int = 800
    min_height: int = 600

    disable_devtools: bool = True
    disable_context_menus: bool = True
    disable_status_bar: bool = True

    # HTTP Basic Auth (например, парольная защита на хостинге)
    basic_auth_user: str = ""
    basic_auth_password: str = ""

    # Логин через форму на странице /login
    auto_login_user: str = ""
    auto_login_password: str = ""

    download_policy: str = "prompt"

    @property
    def basic_auth(self) -> Optional[Credential]:
        return Credential.from_pair(self.basic_auth_user, self.basic_auth_password)

    @property
    def auto_login(self) -> Optional[Credential]:
        return Credential.from_pair(self.auto_login_user, self.auto_login_password)

    @classmethod
    def from_json(cls, raw: Any) -> "LaunchConfig":
        """Strict parse; raises ConfigError on a wrong root or value type."""
        if not isinstance(raw, dict):
            raise ConfigError(f"config root must be an object, got {type(raw).__name__}")
        defaults = cls()
        by_key = {_norm_key(f.name): f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            name = by_key.get(_norm_key(key))
            if name is None:
                continue
            values[name] = _coerce(name, value, getattr(defaults, name))
        return cls(**values).normalized()

    def normalized(self) -> "LaunchConfig":
        changes: Dict[str, Any] = {}
        for name in _DURATIONS + _SIZES:
            if getattr(self, name) < 1:
                changes[name] = 1
        policy = self.download_policy.strip().lower()
        changes["download_policy"] = policy if policy in DOWNLOAD_POLICIES else "prompt"
        return replace(self, **changes)

    def describe(self) -> str:
        return (f"AppUrl={self.app_url}, MaxWait={self.max_wait_seconds}s, "
                f"Poll={self.poll_seconds}s, Timeout={self.request_timeout_seconds}s, "
                f"BasicAuth={'yes' if self.basic_auth else 'no'}, "
                f"AutoLogin={'yes' if self.auto_login else 'no'}, Downloads={self.download_policy}")


def _norm_key(key: Any) -> str:
    return re.sub(r"[_\-]", "", str(key)).lower()


def _coerce(name: str, value: Any, default: Any) -> Any:
    # bool проверяем первым: в Python bool является подклассом int
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    raise ConfigError(f"{name}: expected {type(default).__name__}, got {type(value).__name__}")


def default_config_path() -> Path:
    env = os.environ.get(CONFIG_ENV)
    return Path(env) if env else bundle_base() / CONFIG_FILE_NAME


def load_config(path: Optional[Path] = None) -> LaunchConfig:
    path = Path(path) if path else default_config_path()
    if not path.exists():
        log.info("[CFG] %s not found; using defaults", path)
        return LaunchConfig()
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            raw = json.load(f)
        return LaunchConfig.from_json(raw)
    except (OSError, ValueError, ConfigError) as e:
        # json.JSONDecodeError наследует ValueError
        log.warning("[CFG] %s is unusable (%s); using defaults", path, e)
        return LaunchConfig()
