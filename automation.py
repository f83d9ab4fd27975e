"""Thin wrappers around macOS automation commands."""

from __future__ import annotations

import logging
import subprocess

from errors import AutomationError

logger = logging.getLogger(__name__)


def run_osascript(script: str, timeout_s: float = 5.0) -> str:
    """Run an AppleScript snippet and return its stripped stdout."""
    try:
        completed = subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except FileNotFoundError as exc:
        raise AutomationError("osascript is not available") from exc
    except subprocess.TimeoutExpired as exc:
        raise AutomationError(f"osascript timed out after {timeout_s}s") from exc

    stderr = (completed.stderr or "").strip()
    if completed.returncode != 0 or stderr:
        raise AutomationError(stderr or f"osascript exited with {completed.returncode}")
    return (completed.stdout or "").strip()


def open_application(name: str, timeout_s: float = 10.0) -> None:
    """Launch (or focus) an application with ``open -a``."""
    try:
        completed = subprocess.run(
            ["open", "-a", name],
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise AutomationError(f"could not open {name}: {exc}") from exc
    if completed.returncode != 0:
        raise AutomationError((completed.stderr or "").strip() or f"could not open {name}")
    logger.debug("Opened application %s", name)


def open_url(url: str, timeout_s: float = 10.0) -> None:
    """Hand a URL (including ``x-apple.systempreferences:`` panes) to ``open``."""
    try:
        completed = subprocess.run(
            ["open", url],
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise AutomationError(f"could not open {url}: {exc}") from exc
    if completed.returncode != 0:
        raise AutomationError((completed.stderr or "").strip() or f"could not open {url}")
    logger.debug("Opened %s", url)
