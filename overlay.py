"""Overlay window showing the dictation status."""

from __future__ import annotations

from typing import Callable, Optional

from models import StatusEvent

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_NORMAL_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,210); border-radius: 12px;"
)

STATUS_TEXT = {
    StatusEvent.RECORDING_STARTED: "🎙️ Listening... (Esc to cancel)",
    StatusEvent.RECORDING_STOPPED: "Recording stopped",
    StatusEvent.TRANSCRIPTION_STARTED: "Transcribing...",
    StatusEvent.TEXT_INSERTED: "✓ Text inserted",
    StatusEvent.CANCEL_RECORDING_DIRECT: "Recording cancelled",
}


def status_message(event: StatusEvent, data: dict) -> str:
    """Text the overlay shows for a status event."""
    if event in (StatusEvent.RECORDING_ERROR, StatusEvent.TRANSCRIPTION_ERROR):
        return str(data.get("message", ""))
    if event == StatusEvent.TRANSCRIPTION_COMPLETED:
        return str(data.get("text", ""))
    return STATUS_TEXT.get(event, "")


class OverlayWindow(QWidget):
    def __init__(
        self,
        on_cancel: Optional[Callable[[], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self._on_cancel = on_cancel
        self._on_close = on_close
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(500)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_NORMAL_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_upper(self) -> None:
        """Position the window a quarter of the way down the primary screen."""
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + geom.height() // 4
        self.move(x, y)

    def show_status(self, event: StatusEvent, data: dict) -> None:
        text = status_message(event, data)
        if event in (StatusEvent.RECORDING_ERROR, StatusEvent.TRANSCRIPTION_ERROR):
            self.show_error(text)
            return
        self._label.setStyleSheet(_NORMAL_STYLE)
        self.set_text(text)
        if event in (StatusEvent.TEXT_INSERTED, StatusEvent.CANCEL_RECORDING_DIRECT):
            self.hide_with_delay(2000)

    def set_text(self, text: str) -> None:
        self._cancel_hide_timer()
        self._label.setText(text)
        self._center_upper()
        self.show()

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def show_error(self, text: str, hide_after_ms: int = 3000) -> None:
        self._label.setStyleSheet(_ERROR_STYLE)
        self.set_text(f"⚠️ {text}")
        self.hide_with_delay(hide_after_ms)

    def keyPressEvent(self, event) -> None:  # noqa: N802, ANN001
        if event.key() == Qt.Key_Escape and self._on_cancel is not None:
            self._on_cancel()
            return
        super().keyPressEvent(event)

    def closeEvent(self, event) -> None:  # noqa: N802, ANN001
        # Closing hides the overlay; a running recording is stopped and transcribed.
        event.ignore()
        self.hide()
        if self._on_close is not None:
            self._on_close()

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
