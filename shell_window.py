# -*- coding: utf-8 -*-
"""
Главное окно: QWebEngineView за оверлеем статуса.

Поток опроса (PollWorker) общается с окном только сигналами; соединения
между потоками Qt ставит в очередь GUI-потока, так что навигация и смена
оверлея всегда выполняются в потоке окна. Сигнал может быть обработан уже
после того, как emit() вернул управление.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PyQt5.QtCore import QObject, Qt, QThread, QUrl, pyqtSignal
from PyQt5.QtWidgets import QLabel, QMainWindow, QProgressBar, QStackedWidget, QVBoxLayout, QWidget
from PyQt5.QtWebEngineWidgets import QWebEnginePage, QWebEngineProfile, QWebEngineView, QWebEngineDownloadItem

from webshell.downloads import DownloadInterceptor, DownloadPolicy
from webshell.errors import RendererInitError, ScriptInjectionError, SessionTimeout
from webshell.filename_dialog import FileNameDialog
from webshell.login_automator import LoginAutomator
from webshell.navigation_gate import NavigationGate
from webshell.paths import asset_path, downloads_dir
from webshell.readiness import PollOutcome, ReadinessPoller
from webshell.settings import LaunchConfig

log = logging.getLogger("shell")

APP_SCHEMES = ("http", "https")
WORKER_STOP_TIMEOUT_MS = 3000


def read_asset(file_name: str) -> str:
    p = asset_path(file_name)
    try:
        return p.read_text(encoding="utf-8")
    except OSError:
        log.warning("[ASSET] not found: %s", p)
        return ("<html><body style='font-family:system-ui;background:#16161c;color:#edeef0;padding:24px;'>"
                "<h2>Файл не найден</h2>"
                f"<p>Файл <b>{file_name}</b> не найден.</p>"
                "</body></html>")


# ---------- Рендерер ----------

class ShellPage(QWebEnginePage):
    navigationStarting = pyqtSignal(str)

    def acceptNavigationRequest(self, url: QUrl, nav_type, is_main_frame: bool) -> bool:
        if is_main_frame:
            self.navigationStarting.emit(url.toString())
        return True


class QtRenderer(QObject):
    """Узкий интерфейс к QtWebEngine: навигация, скрипты, события навигации."""

    navigation_starting = pyqtSignal(str)
    navigation_completed = pyqtSignal(str, bool)

    def __init__(self, profile: QWebEngineProfile, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.view = QWebEngineView(parent)
        self.page = ShellPage(profile, self.view)
        self.view.setPage(self.page)
        self.page.navigationStarting.connect(self._on_starting)
        self.page.loadFinished.connect(self._on_finished)

    def navigate(self, url: str) -> None:
        self.view.setUrl(QUrl(url))

    def navigate_to_static_content(self, html: str) -> None:
        self.view.setHtml(html, QUrl("about:blank"))

    def execute_script(self, js: str, callback: Optional[Callable[[Any], None]] = None) -> None:
        try:
            if callback is None:
                self.page.runJavaScript(js)
            else:
                self.page.runJavaScript(js, callback)
        except RuntimeError as e:
            # страница уже удалена на стороне C++
            raise ScriptInjectionError(f"runJavaScript failed: {e}") from e

    @staticmethod
    def _is_app_url(url: str) -> bool:
        return QUrl(url).scheme().lower() in APP_SCHEMES

    # заглушка (data:/about:) в шлюз не попадает
    def _on_starting(self, url: str):
        if self._is_app_url(url):
            self.navigation_starting.emit(url)

    def _on_finished(self, ok: bool):
        url = self.page.url().toString()
        if self._is_app_url(url):
            self.navigation_completed.emit(url, bool(ok))


# ---------- Оверлей ----------

class StatusOverlay(QWidget):
    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setObjectName("ShellOverlay")
        root = QVBoxLayout(self)
        root.setContentsMargins(18, 18, 18, 18)
        root.setSpacing(10)
        root.addStretch(1)
        self.msg = QLabel("", self)
        self.msg.setAlignment(Qt.AlignCenter)
        self.msg.setWordWrap(True)
        root.addWidget(self.msg)
        self.bar = QProgressBar(self)
        self.bar.setRange(0, 0)
        self.bar.setTextVisible(False)
        self.bar.setFixedWidth(260)
        root.addWidget(self.bar, 0, Qt.AlignHCenter)
        root.addStretch(1)
        self.setStyleSheet("""
            QWidget#ShellOverlay { background: #16161c; }
            QLabel { color: #EDEEF0; font-size: 15px; }
            QProgressBar { height: 6px; border: none; background: #2d2f36; border-radius: 3px; }
            QProgressBar::chunk { background: #5aa7ff; }
        """)

    def set_message(self, text: str):
        self.msg.setText(text)


class GateSurface(QStackedWidget):
    """Две страницы: содержимое или оверлей. Видна всегда ровно одна."""

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.content: Optional[QWidget] = None
        self.overlay = StatusOverlay(self)
        self.addWidget(self.overlay)

    def set_content(self, widget: QWidget):
        self.content = widget
        self.addWidget(widget)

    def show_content(self):
        if self.content is not None:
            self.setCurrentWidget(self.content)

    def show_overlay(self, text: str):
        self.overlay.set_message(text)
        self.setCurrentWidget(self.overlay)


# ---------- Опрос сервера ----------

class PollWorker(QThread):
    navigate_requested = pyqtSignal(str, str)
    progress = pyqtSignal(str)
    finished_with = pyqtSignal(str)

    def __init__(self, cfg: LaunchConfig, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.setObjectName("poll-worker")
        self.poller = ReadinessPoller(
            cfg.app_url,
            max_wait=cfg.max_wait_seconds,
            poll_interval=cfg.poll_seconds,
            request_timeout=cfg.request_timeout_seconds,
            navigate=self.navigate_requested.emit,
            credential=cfg.basic_auth,
            on_progress=self.progress.emit,
        )

    def run(self):
        outcome = self.poller.run()
        self.finished_with.emit(outcome.value)

    def stop(self, timeout_ms: int = WORKER_STOP_TIMEOUT_MS) -> bool:
        self.poller.cancel()
        return self.wait(timeout_ms)


# ---------- Окно ----------

class ShellWindow(QMainWindow):
    def __init__(self, cfg: LaunchConfig, profile: QWebEngineProfile):
        super().__init__()
        self.cfg = cfg
        self.setWindowTitle(cfg.window_title)
        self.resize(cfg.width, cfg.height)
        self.setMinimumSize(cfg.min_width, cfg.min_height)

        self.surface = GateSurface(self)
        try:
            self.renderer = QtRenderer(profile, self.surface)
        except RuntimeError as e:
            raise RendererInitError(f"QWebEngineView could not be created: {e}") from e
        self.surface.set_content(self.renderer.view)
        self.setCentralWidget(self.surface)

        if cfg.disable_context_menus:
            self.renderer.view.setContextMenuPolicy(Qt.NoContextMenu)
        if not cfg.disable_status_bar:
            self.renderer.page.linkHovered.connect(lambda url: self.statusBar().showMessage(url))

        self.login = LoginAutomator(self.renderer.execute_script, cfg.auto_login)
        self.gate = NavigationGate(self.surface, self.login, on_ready=self._on_app_ready)
        self.login.on_stalled = self.gate.on_login_stalled
        self.downloads = DownloadInterceptor(
            downloads_dir(),
            DownloadPolicy(cfg.download_policy),
            prompt=lambda name: FileNameDialog.ask(name, self),
        )

        self.renderer.navigation_starting.connect(self.gate.on_navigation_starting)
        self.renderer.navigation_completed.connect(self.gate.on_navigation_completed)
        self.renderer.page.authenticationRequired.connect(self._on_basic_auth)
        profile.downloadRequested.connect(self._on_download_requested)

        self.worker: Optional[PollWorker] = None

    def start(self):
        # заглушка сразу, чтобы движок прогрелся, пока ждём сервер
        self.renderer.navigate_to_static_content(read_asset("loading.html"))
        self.worker = PollWorker(self.cfg, self)
        self.worker.navigate_requested.connect(self._on_navigate_requested)
        self.worker.progress.connect(self._on_poll_progress)
        self.worker.finished_with.connect(self._on_poll_finished)
        self.worker.start()

    def shutdown(self):
        if self.worker is not None and self.worker.isRunning():
            if not self.worker.stop():
                log.warning("[BOOT] poll worker did not stop in %d ms", WORKER_STOP_TIMEOUT_MS)

    def closeEvent(self, event):
        self.shutdown()
        super().closeEvent(event)

    # ---------- Слоты ----------

    def _on_navigate_requested(self, url: str, reason: str):
        log.info("[NAV] navigate (%s): %s", reason, url)
        self.renderer.navigate(url)

    def _on_poll_progress(self, text: str):
        self.gate.set_status(text)

    def _on_poll_finished(self, outcome_value: str):
        outcome = PollOutcome(outcome_value)
        if outcome is PollOutcome.TIMED_OUT:
            err = SessionTimeout(f"Сервер {self.cfg.app_url} не ответил за {self.cfg.max_wait_seconds} с. "
                                 "Проверьте подключение и перезапустите приложение.")
            log.error("[BOOT] %s", err)
            self.gate.fail(str(err))

    def _on_app_ready(self):
        # сервер доступен: повторная навигация от опроса перезагрузила бы страницу
        if self.worker is not None and self.worker.isRunning():
            log.info("[BOOT] app shown; stopping poll worker")
            self.worker.poller.cancel()

    def _on_basic_auth(self, url: QUrl, authenticator):
        cred = self.cfg.basic_auth
        if cred is None:
            log.info("[AUTH] basic auth requested by %s; no credentials configured", url.toString())
            return
        log.info("[AUTH] answering basic auth for %s", url.toString())
        authenticator.setUser(cred.user)
        authenticator.setPassword(cred.password)

    def _on_download_requested(self, item: QWebEngineDownloadItem):
        decision = self.downloads.decide(item.path() or item.url().path())
        if decision.cancelled:
            item.cancel()
            return
        item.setPath(str(decision.path))
        item.accept()
        item.finished.connect(lambda p=str(decision.path), it=item: log.info(
            "[DL] finished state=%s path=%s", it.state(), p))
