"""
Ожидание готовности бэкенда.

Опрашивает ``url`` одиночным GET, пока сервер не ответит, не истечёт
``max_wait`` или сессию не отменят. Любой ответ с кодом < 500 считается
«готов» (достижимый 404 тоже доказывает, что сервер жив).

Если подряд три запроса не получили вообще никакого HTTP-ответа, один раз
выполняется прямая навигация рендерера: в корпоративных сетях прокси часто
режет HTTP-стек пробы, но пропускает встроенный браузер. Опрос после этого
продолжается, чтобы действительно лежащий сервер всё равно дал таймаут.
"""
from __future__ import annotations

import base64
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from webshell.errors import TransientNetworkError
from webshell.settings import Credential

log = logging.getLogger(__name__)

USER_AGENT = "WebShellLauncher/1.0"
FALLBACK_THRESHOLD = 3


class PollOutcome(enum.Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class PollState:
    consecutive_failures: int = 0
    fallback_triggered: bool = False
    started_at: float = 0.0


def basic_auth_header(credential: Credential) -> str:
    raw = f"{credential.user}:{credential.password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def build_session() -> requests.Session:
    # trust_env: системный прокси (env / реестр Windows) как у браузера
    s = requests.Session()
    s.trust_env = True
    s.headers["User-Agent"] = USER_AGENT
    return s


class ReadinessPoller:
    """Poll loop; ``navigate(url, reason)`` is called with reason "ready" or "fallback"."""

    def __init__(
        self,
        url: str,
        max_wait: float,
        poll_interval: float,
        request_timeout: float,
        navigate: Callable[[str, str], None],
        credential: Optional[Credential] = None,
        cancel_event: Optional[threading.Event] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Optional[Callable[[str], None]] = None,
    ):
        self.url = url
        self.max_wait = max_wait
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        self.credential = credential
        self._navigate = navigate
        self._cancel = cancel_event or threading.Event()
        self._session = session or build_session()
        self._clock = clock
        self._on_progress = on_progress
        self.state = PollState()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()
        # закрытие сессии обрывает запрос, который сейчас в полёте
        try:
            self._session.close()
        except Exception as e:
            log.debug("[POLL] session close on cancel: %r", e)

    def probe(self) -> int:
        """Single GET; returns the status code or raises TransientNetworkError."""
        headers = {}
        if self.credential:
            headers["Authorization"] = basic_auth_header(self.credential)
        try:
            # stream=True: ждём только заголовки, тело не читаем
            with self._session.get(self.url, headers=headers, timeout=self.request_timeout,
                                   stream=True) as resp:
                return int(resp.status_code)
        except (requests.RequestException, OSError) as e:
            raise TransientNetworkError(f"{type(e).__name__}: {e}") from e

    def run(self) -> PollOutcome:
        self.state = PollState(started_at=self._clock())
        st = self.state
        attempt = 0
        log.info("[POLL] start url=%s max_wait=%ss interval=%ss timeout=%ss",
                 self.url, self.max_wait, self.poll_interval, self.request_timeout)

        while not self.cancelled:
            attempt += 1
            self._progress(attempt)
            try:
                code = self.probe()
            except TransientNetworkError as e:
                if self.cancelled:
                    return self._finish(PollOutcome.CANCELLED)
                st.consecutive_failures += 1
                log.warning("[POLL] FAILED (#%d): %s", st.consecutive_failures, e)
                if not st.fallback_triggered and st.consecutive_failures >= FALLBACK_THRESHOLD:
                    st.fallback_triggered = True
                    log.info("[POLL] direct navigate fallback: %s", self.url)
                    self._navigate(self.url, "fallback")
            else:
                st.consecutive_failures = 0
                log.info("[POLL] OK: %d", code)
                if code < 500:
                    log.info("[POLL] navigate (ready): %s", self.url)
                    self._navigate(self.url, "ready")
                    return self._finish(PollOutcome.READY)

            if self.cancelled:
                return self._finish(PollOutcome.CANCELLED)
            if self._clock() - st.started_at > self.max_wait:
                return self._finish(PollOutcome.TIMED_OUT)
            if self._cancel.wait(self.poll_interval):
                return self._finish(PollOutcome.CANCELLED)

        return self._finish(PollOutcome.CANCELLED)

    def _progress(self, attempt: int) -> None:
        if self._on_progress:
            self._on_progress(f"Ожидание сервера… попытка {attempt}")

    def _finish(self, outcome: PollOutcome) -> PollOutcome:
        elapsed = self._clock() - self.state.started_at
        log.info("[POLL] finished: %s after %.1fs (fallback=%s)",
                 outcome.value, elapsed, self.state.fallback_triggered)
        return outcome
