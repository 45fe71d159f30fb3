"""
Шлюз видимости: содержимое рендерера показывается только когда приложение
реально готово; до этого пользователь видит оверлей со статусом.

Таблица переходов (события рендерера):

    starting(url), приложение ещё не показано -> AUTHENTICATING | WAITING
    starting(login url), приложение показано  -> AUTHENTICATING (сессия истекла)
    completed(url, ok), ok и не login         -> READY
    completed(login url, *), автовход идёт    -> AUTHENTICATING
    completed(login url, *), автовхода нет    -> READY (вход вручную)
    completed(url, fail), не показано         -> WAITING, текст ошибки загрузки
    completed(url, fail), уже показано        -> READY (ошибку покажет сам движок)
    login_stalled(), в AUTHENTICATING         -> READY (вход вручную)

Инвариант: содержимое видно тогда и только тогда, когда state == READY;
оверлей виден тогда и только тогда, когда содержимое скрыто.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from webshell.heuristics import is_login_url

log = logging.getLogger(__name__)

TEXT_LOADING = "Загрузка приложения…"
TEXT_AUTHENTICATING = "Выполняется вход…"
TEXT_LOAD_FAILED = "Не удалось открыть {url}. Проверьте подключение и перезапустите приложение."


class GateState(enum.Enum):
    WAITING = "waiting"
    AUTHENTICATING = "authenticating"
    READY = "ready"


class NavigationGate:
    """
    surface: объект с методами show_content() и show_overlay(text).
    login:   LoginAutomator (maybe_login(url), enabled, pending) или None.
    """

    def __init__(self, surface, login=None, on_ready: Optional[Callable[[], None]] = None):
        self._surface = surface
        self._login = login
        self._on_ready = on_ready
        self.state = GateState.WAITING
        self.app_shown = False
        self.failed = False
        self.overlay_text = TEXT_LOADING
        self._surface.show_overlay(self.overlay_text)

    @property
    def content_visible(self) -> bool:
        return self.state is GateState.READY

    @property
    def auto_login_enabled(self) -> bool:
        return self._login is not None and self._login.enabled

    def set_status(self, text: str) -> None:
        """Текст оверлея, пока ждём (например, прогресс опроса)."""
        if self.state is GateState.WAITING and not self.failed:
            self._enter(GateState.WAITING, text)

    def fail(self, message: str) -> None:
        if self.app_shown:
            log.info("[NAV] failure ignored, app already shown: %s", message)
            return
        self.failed = True
        self._enter(GateState.WAITING, message)

    def on_login_stalled(self) -> None:
        """Автовход ничего не дал: показываем форму, пользователь войдёт сам."""
        if self.state is GateState.AUTHENTICATING:
            log.info("[NAV] auto-login stalled; showing login page")
            self._show_page()

    # ---------- События рендерера ----------

    def on_navigation_starting(self, url: str) -> None:
        login = is_login_url(url)
        log.info("[NAV] starting: %s (login=%s, shown=%s)", url, login, self.app_shown)
        if not self.app_shown:
            self._enter(GateState.AUTHENTICATING if login else GateState.WAITING)
        elif login:
            self._enter(GateState.AUTHENTICATING)

    def on_navigation_completed(self, url: str, success: bool) -> None:
        log.info("[NAV] completed: ok=%s url=%s", success, url)
        if self._login is not None:
            self._login.maybe_login(url)

        login = is_login_url(url)
        if success and not login:
            self._show_page()
        elif login:
            if self._login is not None and self._login.pending:
                self._enter(GateState.AUTHENTICATING)
            else:
                self._show_page()
        elif not self.app_shown:
            self._enter(GateState.WAITING, None if self.failed else TEXT_LOAD_FAILED.format(url=url))

    # ---------- Переходы ----------

    def _show_page(self) -> None:
        first = not self.app_shown
        self.app_shown = True
        self.failed = False
        self._enter(GateState.READY)
        if first and self._on_ready:
            self._on_ready()

    def _enter(self, state: GateState, text: Optional[str] = None) -> None:
        if state is not self.state:
            log.info("[NAV] %s -> %s", self.state.value, state.value)
        self.state = state
        if state is GateState.READY:
            self._surface.show_content()
            return
        if text is None and self.failed and state is GateState.WAITING:
            text = self.overlay_text
        if text is None:
            if state is GateState.AUTHENTICATING and self.auto_login_enabled:
                text = TEXT_AUTHENTICATING
            else:
                text = TEXT_LOADING
        self.overlay_text = text
        self._surface.show_overlay(text)
