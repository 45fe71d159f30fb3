from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PyQt5.QtCore import QTimer

from webshell.errors import ScriptInjectionError
from webshell.heuristics import SCRIPT_OK_RESULTS, build_login_script, is_login_url
from webshell.settings import Credential

log = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 4


class LoginAutomator:
    """
    Автовход на странице логина: подставляет учётные данные и отправляет форму.

    Не более одной попытки на загрузку страницы. Флаг ``attempted``
    сбрасывается таймером через RETRY_DELAY_SECONDS, после чего следующая
    загрузка страницы входа получает ещё одну попытку. Вся работа идёт в
    GUI-потоке, таймер тоже.

    ``pending`` истинно, пока отправленный скрипт может ещё привести к входу.
    Когда попытка заканчивается ничем (скрипт не нашёл форму, упал, или
    истекла задержка), вызывается ``on_stalled``: окно показывает форму,
    и пользователь входит вручную.
    """

    def __init__(
        self,
        execute_script: Callable[[str, Optional[Callable[[Any], None]]], None],
        credential: Optional[Credential],
        schedule: Optional[Callable[[int, Callable[[], None]], None]] = None,
        retry_delay: float = RETRY_DELAY_SECONDS,
        on_stalled: Optional[Callable[[], None]] = None,
    ):
        self._execute_script = execute_script
        self.credential = credential
        self._schedule = schedule or QTimer.singleShot
        self.retry_delay = retry_delay
        self.on_stalled = on_stalled
        self.attempted = False
        self.pending = False

    @property
    def enabled(self) -> bool:
        return self.credential is not None

    def maybe_login(self, current_url: str) -> bool:
        """True, если скрипт входа передан рендереру."""
        if self.attempted:
            return False
        if not is_login_url(current_url):
            return False
        if self.credential is None:
            return False

        self.attempted = True
        log.info("[LOGIN] injecting credentials on %s", current_url)
        try:
            self._execute_script(build_login_script(self.credential), self._on_result)
        except ScriptInjectionError as e:
            # best effort: пользователь всегда может войти вручную
            log.warning("[LOGIN] script injection failed: %s", e)
            return False
        else:
            self.pending = True
            return True
        finally:
            self._schedule(int(self.retry_delay * 1000), self._reset)

    def _on_result(self, result: Any) -> None:
        if result in SCRIPT_OK_RESULTS:
            log.info("[LOGIN] script result: %s", result)
            return
        # None: скрипт бросил исключение внутри страницы
        log.warning("[LOGIN] script did not submit the form: %s", result)
        self._stall()

    def _reset(self) -> None:
        self.attempted = False
        self._stall()

    def _stall(self) -> None:
        if not self.pending:
            return
        self.pending = False
        if self.on_stalled:
            self.on_stalled()
