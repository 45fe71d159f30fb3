# -*- coding: utf-8 -*-
from __future__ import annotations

import os
import sys
import logging
import signal
from datetime import datetime

from webshell.errors import RendererInitError
from webshell.logsink import CRASH_FILE_NAME, install_excepthook, setup_logging
from webshell.paths import bundle_base, logs_dir, user_data_root
from webshell.settings import LaunchConfig, default_config_path, load_config

log = logging.getLogger("launcher")

BASE = bundle_base()
DEV_MODE = (not getattr(sys, "frozen", False)) or ("--dev" in sys.argv) or (os.environ.get("WEBSHELL_DEV") == "1")
USE_SOFT_GL = ("--softgl" in sys.argv) or (os.environ.get("WEBSHELL_SOFT_GL") == "1")
DEVTOOLS_PORT = "9222"


def pline(msg: str):
    log.info(msg)


# ----------------------------------------------------------------------------
# QtWebEngine env: выставляется до первого импорта QtWebEngineWidgets,
# процесс движка читает эти переменные при своём старте
# ----------------------------------------------------------------------------

def prepare_qt_env(cfg: LaunchConfig):
    # Без этого QtWebEngine в собранном .exe на Windows часто падает при старте
    os.environ.setdefault("QTWEBENGINE_DISABLE_SANDBOX", "1")
    if cfg.disable_devtools:
        os.environ.pop("QTWEBENGINE_REMOTE_DEBUGGING", None)
    else:
        os.environ["QTWEBENGINE_REMOTE_DEBUGGING"] = DEVTOOLS_PORT
        pline(f"[BOOT] devtools on http://127.0.0.1:{DEVTOOLS_PORT}")
    os.environ.setdefault("QT_LOGGING_RULES", "qt.webenginecontext.debug=false;qt.qpa.*=false")


def _import_webengine():
    try:
        from PyQt5.QtWebEngineWidgets import QWebEngineProfile, QWebEngineSettings
    except ImportError as e:
        raise RendererInitError(f"QtWebEngine import failed: {e}") from e
    return QWebEngineProfile, QWebEngineSettings


def _configure_profile(QWebEngineProfile, QWebEngineSettings):
    s = QWebEngineSettings.globalSettings()
    s.setAttribute(QWebEngineSettings.PluginsEnabled, False)
    s.setAttribute(QWebEngineSettings.JavascriptEnabled, True)
    s.setAttribute(QWebEngineSettings.FullScreenSupportEnabled, True)

    # постоянный профиль: куки переживают перезапуск, логин реже нужен
    prof = QWebEngineProfile.defaultProfile()
    u = user_data_root()
    for sub in ("cache", "storage"):
        (u / sub).mkdir(parents=True, exist_ok=True)
    prof.setHttpCacheType(QWebEngineProfile.DiskHttpCache)
    prof.setCachePath(str(u / "cache"))
    prof.setPersistentStoragePath(str(u / "storage"))
    prof.setPersistentCookiesPolicy(QWebEngineProfile.ForcePersistentCookies)
    return prof


def _fatal(title: str, message: str):
    from PyQt5.QtWidgets import QMessageBox
    QMessageBox.critical(None, title, message)


# ----------------------------------------------------------------------------
# Main
# ----------------------------------------------------------------------------

def main() -> int:
    log_path = setup_logging(logs_dir(), dev_console=DEV_MODE)
    install_excepthook(logs_dir() / CRASH_FILE_NAME)
    pline(f"=== Launcher start {datetime.now().isoformat(timespec='seconds')} ===")
    pline(f"BASE={BASE}  LOG={log_path}  CONFIG={default_config_path()}")

    cfg = load_config()
    pline(f"[CFG] {cfg.describe()}")
    prepare_qt_env(cfg)

    from PyQt5.QtCore import QCoreApplication, Qt
    from PyQt5.QtWidgets import QApplication

    if USE_SOFT_GL:
        QCoreApplication.setAttribute(Qt.AA_UseSoftwareOpenGL, True)
        pline("[GPU] Software OpenGL enabled (flag)")

    # QtWebEngineWidgets обязан импортироваться до создания QApplication
    webengine_error = None
    try:
        QWebEngineProfile, QWebEngineSettings = _import_webengine()
    except RendererInitError as e:
        webengine_error = e

    app = QApplication(sys.argv)
    QCoreApplication.setApplicationName(cfg.window_title)
    QCoreApplication.setApplicationVersion("1.0")

    if webengine_error is not None:
        log.error("[BOOT] %s", webengine_error)
        _fatal("Ошибка запуска", "Не удалось инициализировать QtWebEngine.\n"
                                 "Переустановите приложение.\n\n" + str(webengine_error))
        return 1

    from shell_window import ShellWindow
    try:
        prof = _configure_profile(QWebEngineProfile, QWebEngineSettings)
        win = ShellWindow(cfg, prof)
    except (RendererInitError, OSError) as e:
        log.error("[BOOT] renderer init failed: %s", e)
        _fatal("Ошибка запуска", f"Не удалось инициализировать окно браузера.\n\n{e}")
        return 1

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, lambda *_: QCoreApplication.quit())
        except (ValueError, OSError):
            pass

    app.aboutToQuit.connect(win.shutdown)
    win.show()
    win.start()
    rc = app.exec_()
    pline(f"Exit code {rc}")
    return rc


if __name__ == "__main__":
    sys.exit(main())
