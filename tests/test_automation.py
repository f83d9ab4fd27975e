from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from automation import open_url, run_osascript
from errors import AutomationError


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    completed = MagicMock()
    completed.returncode = returncode
    completed.stdout = stdout
    completed.stderr = stderr
    return completed


@patch("automation.subprocess.run")
def test_open_url_passes_url_to_open(run: MagicMock) -> None:
    run.return_value = _completed()
    open_url("x-apple.systempreferences:com.apple.preference.security?Privacy_Microphone")
    assert run.call_args[0][0] == [
        "open",
        "x-apple.systempreferences:com.apple.preference.security?Privacy_Microphone",
    ]


@patch("automation.subprocess.run")
def test_open_url_failure_raises(run: MagicMock) -> None:
    run.return_value = _completed(returncode=1, stderr="no application knows how to open")
    with pytest.raises(AutomationError, match="no application"):
        open_url("x-apple.systempreferences:bogus")


@patch("automation.subprocess.run")
def test_run_osascript_returns_stripped_stdout(run: MagicMock) -> None:
    run.return_value = _completed(stdout="true\n")
    assert run_osascript('tell application "System Events" to get UI elements enabled') == "true"


@patch("automation.subprocess.run")
def test_run_osascript_timeout(run: MagicMock) -> None:
    run.side_effect = subprocess.TimeoutExpired(cmd="osascript", timeout=5)
    with pytest.raises(AutomationError, match="timed out"):
        run_osascript("delay 10")
