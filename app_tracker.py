"""Resolve which application should receive the transcribed text."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Sequence

from automation import open_application, run_osascript
from errors import AutomationError, ResolutionError

logger = logging.getLogger(__name__)

ScriptRunner = Callable[[str], str]
AppLauncher = Callable[[str], None]

DEFAULT_OWN_NAMES = ("SpeakNote", "speaknote", "Python")
DEFAULT_NOISE_NAMES = ("Finder",)
DEFAULT_EDITOR = "TextEdit"

_ITEM_OF_RE = re.compile(r"item \d+ of ", re.IGNORECASE)

_FRONTMOST_SCRIPT = (
    'tell application "System Events" to get name of first application process '
    "whose frontmost is true"
)
_VISIBLE_SCRIPT = (
    'tell application "System Events" to get name of every process whose visible is true'
)


def quote_applescript(value: str) -> str:
    """Return ``value`` as an AppleScript string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def normalize_app_name(raw: str) -> str:
    """Reduce raw osascript output to a single clean application name."""
    name = (raw or "").strip()
    if "," in name:
        name = name.split(",")[0].strip()
    name = _ITEM_OF_RE.sub("", name).strip()
    return name.strip('"').strip()


def _split_list(raw: str) -> List[str]:
    return [normalize_app_name(part) for part in (raw or "").split(",") if part.strip()]


class MacAppTracker:
    def __init__(
        self,
        own_names: Sequence[str] = DEFAULT_OWN_NAMES,
        noise_names: Sequence[str] = DEFAULT_NOISE_NAMES,
        default_editor: str = DEFAULT_EDITOR,
        run_script: ScriptRunner = run_osascript,
        launch_app: AppLauncher = open_application,
    ) -> None:
        self._own_names = tuple(own_names)
        self._noise_names = tuple(noise_names)
        self._default_editor = default_editor
        self._run_script = run_script
        self._launch_app = launch_app

    def frontmost_app(self) -> str:
        return normalize_app_name(self._run_script(_FRONTMOST_SCRIPT))

    def visible_apps(self) -> List[str]:
        return _split_list(self._run_script(_VISIBLE_SCRIPT))

    def is_excluded(self, name: str) -> bool:
        if not name:
            return True
        if name in self._noise_names:
            return True
        return any(name == own or own in name for own in self._own_names)

    def first_candidate(self, names: Iterable[str]) -> str | None:
        for name in names:
            if not self.is_excluded(name):
                return name
        return None

    def resolve_target(self) -> str:
        """Return the app frontmost right now, looking past ourselves and noise."""
        try:
            front = self.frontmost_app()
        except AutomationError as exc:
            logger.warning("Frontmost app query failed: %s", exc)
            return self._fallback_to_default_editor()

        if not self.is_excluded(front):
            logger.debug("Target application: %s", front)
            return front

        logger.debug("Frontmost app %r is excluded, scanning visible processes", front)
        try:
            candidate = self.first_candidate(self.visible_apps())
        except AutomationError as exc:
            logger.warning("Visible process query failed: %s", exc)
            candidate = None
        if candidate:
            logger.debug("Target application: %s", candidate)
            return candidate
        return self._fallback_to_default_editor()

    def is_running(self, name: str) -> bool:
        script = (
            'tell application "System Events" to (name of processes) contains '
            + quote_applescript(name)
        )
        try:
            return self._run_script(script).strip().lower() == "true"
        except AutomationError as exc:
            logger.warning("Could not check whether %s is running: %s", name, exc)
            return False

    def _fallback_to_default_editor(self) -> str:
        editor = self._default_editor
        if self.is_running(editor):
            return editor
        logger.info("No usable target found, launching %s", editor)
        try:
            self._launch_app(editor)
        except AutomationError as exc:
            raise ResolutionError(f"No target application found and {editor} could not be opened: {exc}") from exc
        return editor
