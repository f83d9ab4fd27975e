"""Microphone recorder adapter around an external ``sox`` process."""

from __future__ import annotations

import logging
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from errors import RecordingError

logger = logging.getLogger(__name__)

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore


@dataclass(frozen=True)
class KillPolicy:
    """Signals sent in order, the wait after each, and the by-name sweep that follows."""

    signals: Tuple[int, ...]
    grace_s: float
    sweep_command: Tuple[str, ...]


STOP_POLICY = KillPolicy(
    signals=(signal.SIGTERM, signal.SIGKILL),
    grace_s=0.5,
    sweep_command=("killall", "sox"),
)
CANCEL_POLICY = KillPolicy(
    signals=(signal.SIGKILL,),
    grace_s=0.0,
    sweep_command=("killall", "-9", "sox"),
)


def list_input_devices() -> List[str]:
    """Names of audio devices that can record."""
    if sd is None:
        logger.warning("sounddevice is not installed, cannot list input devices")
        return []
    try:
        devices: Any = sd.query_devices()
    except Exception as exc:
        logger.warning("Could not query audio devices: %s", exc)
        return []
    return [str(d["name"]) for d in devices if int(d.get("max_input_channels", 0)) > 0]


class SoxRecorder:
    def __init__(
        self,
        sox_path: str = "sox",
        sample_rate: int = 44100,
        channels: int = 1,
        stop_policy: KillPolicy = STOP_POLICY,
        cancel_policy: KillPolicy = CANCEL_POLICY,
    ) -> None:
        self.sox_path = sox_path
        self.sample_rate = sample_rate
        self.channels = channels
        self.stop_policy = stop_policy
        self.cancel_policy = cancel_policy
        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        proc = self._proc
        return proc is not None and proc.poll() is None

    def build_command(self, path: str, device: str = "") -> List[str]:
        if device and device.strip():
            source = ["-t", "coreaudio", device.strip()]
        else:
            source = ["-d"]
        return [
            self.sox_path,
            "-q",
            *source,
            "-r",
            str(self.sample_rate),
            "-c",
            str(self.channels),
            path,
        ]

    def start(self, path: str, device: str = "") -> None:
        with self._lock:
            if self._proc is not None and self._proc.poll() is None:
                return
            cmd = self.build_command(path, device)
            logger.debug("Starting recorder: %s", cmd)
            try:
                self._proc = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                )
            except OSError as exc:
                self._proc = None
                raise RecordingError(f"Could not start recorder: {exc}") from exc

    def stop(self) -> None:
        """Graceful stop. Raises RecordingError if the recorder had already died."""
        with self._lock:
            proc = self._proc
            self._proc = None
            returncode = self._terminate(proc, self.stop_policy)
        if returncode not in (None, 0):
            detail = _read_stderr(proc)
            raise RecordingError(f"Recorder exited abnormally ({returncode}): {detail}".rstrip(": "))

    def cancel(self) -> None:
        with self._lock:
            proc = self._proc
            self._proc = None
            self._terminate(proc, self.cancel_policy)

    def sweep(self) -> None:
        """Kill stray recorder instances left behind by earlier sessions."""
        self._run_sweep(self.stop_policy.sweep_command)

    def _terminate(self, proc: Optional[subprocess.Popen], policy: KillPolicy) -> Optional[int]:
        exited_early: Optional[int] = None
        if proc is not None:
            exited_early = proc.poll()
            if exited_early is None:
                self._signal_ladder(proc, policy.signals, policy.grace_s)
        self._run_sweep(policy.sweep_command)
        return exited_early

    def _signal_ladder(self, proc: subprocess.Popen, signals: Sequence[int], grace_s: float) -> None:
        for sig in signals:
            try:
                proc.send_signal(sig)
            except ProcessLookupError:
                return
            try:
                proc.wait(timeout=grace_s)
                return
            except subprocess.TimeoutExpired:
                logger.debug("Recorder still alive after signal %s", sig)

    def _run_sweep(self, command: Sequence[str]) -> None:
        try:
            subprocess.run(list(command), capture_output=True, timeout=2.0)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("Recorder sweep %s failed: %s", command, exc)


def _read_stderr(proc: Optional[subprocess.Popen]) -> str:
    if proc is None or proc.stderr is None:
        return ""
    try:
        return proc.stderr.read().decode("utf-8", errors="replace").strip()
    except (OSError, ValueError):
        return ""
