"""Clipboard-paste text insertion into a named application."""

from __future__ import annotations

import logging
import time
from typing import Callable

from app_tracker import quote_applescript
from automation import run_osascript
from errors import INSERTION_ERROR
from models import InsertResult

logger = logging.getLogger(__name__)

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore


def activate_application(name: str) -> None:
    run_osascript(f"tell application {quote_applescript(name)} to activate")


class ClipboardPasteInjector:
    def __init__(
        self,
        settle_delay_s: float = 0.3,
        restore_delay_s: float = 0.15,
        activate: Callable[[str], None] = activate_application,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settle_delay_s = settle_delay_s
        self._restore_delay_s = restore_delay_s
        self._activate = activate
        self._sleep = sleep

    def insert(self, app_name: str, text: str) -> InsertResult:
        if not text.strip():
            return InsertResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return InsertResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            self._activate(app_name)
            self._sleep(self._settle_delay_s)
            keyboard = Controller()
            keyboard.press(Key.cmd)
            keyboard.press("v")
            keyboard.release("v")
            keyboard.release(Key.cmd)
            self._sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            logger.debug("Pasted %d characters into %s", len(text), app_name)
            return InsertResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            restored = False
            try:
                if old_clip is not None:
                    pyperclip.copy(old_clip)
                    restored = True
            except Exception as restore_exc:
                logger.warning("Clipboard restore failed: %s", restore_exc)
            return InsertResult(
                success=False,
                reason=f"{INSERTION_ERROR}: {exc}",
                clipboard_restored=restored,
            )
