"""Ошибки лаунчера: один класс на каждый вид сбоя."""


class LauncherError(Exception):
    """Base exception for all launcher errors."""


class ConfigError(LauncherError):
    """appsettings.json is missing, unreadable or malformed."""


class TransientNetworkError(LauncherError):
    """Health probe produced no HTTP response (timeout, refused, proxy, TLS, DNS)."""


class SessionTimeout(LauncherError):
    """Backend did not become ready within max_wait."""


class ScriptInjectionError(LauncherError):
    """Renderer refused or failed to run an injected script."""


class DownloadNamingError(LauncherError):
    """Target directory or file name for a download could not be resolved."""


class RendererInitError(LauncherError):
    """QtWebEngine could not be initialised; fatal for the session."""
