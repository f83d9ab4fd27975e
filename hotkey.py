"""Global hotkey adapter based on pynput."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

PRIMARY_HOTKEY = "<f5>"
FALLBACK_HOTKEY = "<cmd>+5"


class GlobalHotkeyAdapter:
    def __init__(
        self,
        hotkey: str = PRIMARY_HOTKEY,
        fallback_hotkey: str = FALLBACK_HOTKEY,
        cancel_hotkey: Optional[str] = None,
    ) -> None:
        self._hotkey = hotkey
        self._fallback_hotkey = fallback_hotkey
        self._cancel_hotkey = cancel_hotkey
        self._listener: Optional[object] = None
        self.active_hotkey: Optional[str] = None

    def start(self, on_toggle: Callable[[], None], on_cancel: Optional[Callable[[], None]] = None) -> str:
        """Register the toggle binding, falling back to the secondary one. Returns the active binding."""
        if keyboard is None:
            raise RuntimeError("pynput is not installed")

        last_error: Optional[Exception] = None
        for binding in (self._hotkey, self._fallback_hotkey):
            if not binding:
                continue
            mapping: Dict[str, Callable[[], None]] = {binding: on_toggle}
            if self._cancel_hotkey and on_cancel is not None:
                mapping[self._cancel_hotkey] = on_cancel
            try:
                listener = keyboard.GlobalHotKeys(mapping)
                listener.start()
            except Exception as exc:
                logger.warning("Could not register hotkey %s: %s", binding, exc)
                last_error = exc
                continue
            self._listener = listener
            self.active_hotkey = binding
            logger.info("Global hotkey %s registered", binding)
            return binding

        raise RuntimeError(f"No global hotkey could be registered: {last_error}")

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
            self.active_hotkey = None
