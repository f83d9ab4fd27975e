"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Callable

from app_tracker import MacAppTracker
from commands import (
    CANCEL_RECORDING,
    CHECK_ACCESSIBILITY_PERMISSION,
    CLOSE_OVERLAY,
    FINISH_ONBOARDING,
    GET_API_OPTIONS,
    GET_AUDIO_DEVICES,
    OPEN_ACCESSIBILITY_SETTINGS,
    OPEN_MICROPHONE_SETTINGS,
    SAVE_SETTINGS,
    CommandDispatcher,
)
from config import JsonConfigStore
from errors import CONFIG_ERROR
from hotkey import GlobalHotkeyAdapter
from models import SessionState, StatusEvent
from overlay import OverlayWindow
from recorder import SoxRecorder
from session_controller import DictationController
from text_injector import ClipboardPasteInjector

logger = logging.getLogger(__name__)

try:
    from PySide6.QtCore import QObject, QSize, QTimer, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QLineEdit, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

APP_NAME = "SpeakNote"


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"
ICON_RECORDING = "#FF4444"
ICON_BUSY = "#4488FF"
ICON_ERROR = "#FF8800"


class UIBridge(QObject):
    status_signal = Signal(str, dict)
    state_signal = Signal(str, str)  # from_state, to_state


def _in_background(func: Callable[[], object]) -> None:
    threading.Thread(target=func, daemon=True).start()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.ui = UIBridge()
        self.ui.status_signal.connect(self._on_status_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)

        self.controller = DictationController(
            recorder=SoxRecorder(),
            tracker=MacAppTracker(),
            injector=ClipboardPasteInjector(),
            config_store=self.config_store,
            on_state_change=self._on_state_change,
            on_status=self._on_status,
        )
        self.commands = CommandDispatcher(self.controller, self.config_store)
        self.overlay = OverlayWindow(
            on_cancel=lambda: _in_background(lambda: self.commands.dispatch(CANCEL_RECORDING)),
            on_close=lambda: _in_background(lambda: self.commands.dispatch(CLOSE_OVERLAY)),
        )
        settings = self.config_store.load_settings()
        self.hotkey = GlobalHotkeyAdapter(hotkey=settings.hotkey, cancel_hotkey="<esc>")

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip(f"{APP_NAME}: Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        toggle_action = QAction("Start/Stop Dictation", menu)
        toggle_action.triggered.connect(self._on_hotkey_toggle)
        menu.addAction(toggle_action)

        menu.addSeparator()
        settings_action = QAction("Settings…", menu)
        settings_action.triggered.connect(self._open_settings)
        menu.addAction(settings_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _open_settings(self) -> bool:
        settings = self.config_store.load_settings()
        api_key, ok = QInputDialog.getText(
            None, APP_NAME, "Transcription API key", QLineEdit.Password, settings.api_key
        )
        if not ok:
            return False

        options = self.commands.dispatch(GET_API_OPTIONS)
        names = [option["name"] for option in options]
        current = next(
            (i for i, option in enumerate(options) if option["value"] == settings.api_type), 0
        )
        api_name, ok = QInputDialog.getItem(None, APP_NAME, "Transcription API", names, current, False)
        if not ok:
            return False
        api_type = options[names.index(api_name)]["value"]

        devices = ["System default"] + self.commands.dispatch(GET_AUDIO_DEVICES)
        device_index = devices.index(settings.audio_device) if settings.audio_device in devices else 0
        device, ok = QInputDialog.getItem(None, APP_NAME, "Microphone", devices, device_index, False)
        if not ok:
            return False
        audio_device = "" if device == devices[0] else device

        self.commands.dispatch(
            SAVE_SETTINGS,
            {"apiKey": api_key, "apiType": api_type, "audioDevice": audio_device},
        )
        return True

    def _run_onboarding(self) -> None:
        QMessageBox.information(
            None,
            APP_NAME,
            f"Welcome to {APP_NAME}!\n\n"
            "Press F5 in any app to start dictating and F5 again to insert the text.\n"
            "Allow microphone and accessibility access in System Settings when asked.",
        )
        self._request_permissions()
        if self._open_settings():
            self.commands.dispatch(FINISH_ONBOARDING)

    def _request_permissions(self) -> None:
        if self.commands.dispatch(CHECK_ACCESSIBILITY_PERMISSION)["hasPermission"]:
            return
        answer = QMessageBox.question(
            None,
            APP_NAME,
            f"{APP_NAME} needs accessibility access to find the active app and paste text.\n\n"
            "Open System Settings now?",
        )
        if answer == QMessageBox.Yes:
            self.commands.dispatch(OPEN_ACCESSIBILITY_SETTINGS)
            self.commands.dispatch(OPEN_MICROPHONE_SETTINGS)

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_status(self, event: StatusEvent, data: dict) -> None:
        self.ui.status_signal.emit(event.value, data)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_status_ui(self, event_name: str, data: dict) -> None:
        event = StatusEvent(event_name)
        self.overlay.show_status(event, data)
        if data.get("code") == CONFIG_ERROR:
            QTimer.singleShot(2000, self._open_settings)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip(f"{APP_NAME}: Recording...")
        elif to_state in (SessionState.TRANSCRIBING.value, SessionState.INSERTING.value):
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip(f"{APP_NAME}: Processing...")
        elif to_state == SessionState.FAILED.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        elif to_state == SessionState.IDLE.value and from_state != SessionState.FAILED.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip(f"{APP_NAME}: Ready")

    # ------------------------------------------------------------------
    # Hotkey handlers
    # ------------------------------------------------------------------

    def _on_hotkey_toggle(self) -> None:
        # Stopping uploads audio; keep it off the listener and Qt threads.
        _in_background(self.controller.toggle)

    def _on_hotkey_cancel(self) -> None:
        _in_background(lambda: self.commands.dispatch(CANCEL_RECORDING))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_toggle=self._on_hotkey_toggle, on_cancel=self._on_hotkey_cancel)
        except Exception as exc:
            logger.error("Hotkey disabled: %s", exc)
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        if not self.config_store.load_settings().onboarding_completed:
            QTimer.singleShot(0, self._run_onboarding)
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        if self.controller.is_recording:
            self.controller.stop_session()
        self.app.quit()


def main() -> int:
    logging.basicConfig(
        level=os.getenv("SPEAKNOTE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
