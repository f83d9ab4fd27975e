"""State-machine based dictation lifecycle.

Idle -> Capturing -> Recording -> Stopping -> Transcribing -> Inserting -> Idle,
with Cancelled and Failed as short-lived states that always end in Idle.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from typing import Any, Callable, Optional

from errors import (
    ConfigurationError,
    DictationError,
    DurationError,
    InsertionError,
    NoSpeechError,
    RecordingError,
    ResolutionError,
    TranscriptionError,
)
from interfaces import AppTracker, ConfigStore, Recorder, TextInjector, TranscriptionBackend
from models import Session, SessionState, StatusEvent
from transcription import create_backend

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
StatusCallback = Callable[[StatusEvent, dict], None]
BackendFactory = Callable[[str, str], TranscriptionBackend]


class DictationController:
    def __init__(
        self,
        recorder: Recorder,
        tracker: AppTracker,
        injector: TextInjector,
        config_store: ConfigStore,
        backend_factory: BackendFactory = create_backend,
        on_state_change: Optional[StateCallback] = None,
        on_status: Optional[StatusCallback] = None,
        min_duration_s: float = 1.0,
        min_audio_bytes: int = 1000,
        debounce_s: float = 0.8,
        processing_grace_s: float = 0.5,
        cancel_cooldown_s: float = 1.5,
        restart_delay_s: float = 1.0,
        sweep_settle_s: float = 0.3,
        temp_dir: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._recorder = recorder
        self._tracker = tracker
        self._injector = injector
        self._config_store = config_store
        self._backend_factory = backend_factory
        self._on_state_change = on_state_change
        self._on_status = on_status

        self._min_duration_s = min_duration_s
        self._min_audio_bytes = min_audio_bytes
        self._debounce_s = debounce_s
        self._processing_grace_s = processing_grace_s
        self._cancel_cooldown_s = cancel_cooldown_s
        self._restart_delay_s = restart_delay_s
        self._sweep_settle_s = sweep_settle_s
        self._temp_dir = temp_dir or tempfile.gettempdir()
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[Session] = None
        self._backend: Optional[TranscriptionBackend] = None
        self._session_counter = 0
        self._last_cancel_at: Optional[float] = None
        self._last_trigger_at: Optional[float] = None
        self._processing = False
        self._processing_until = 0.0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_cancel_at(self) -> Optional[float]:
        return self._last_cancel_at

    @property
    def is_recording(self) -> bool:
        return self._state == SessionState.RECORDING

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def toggle(self) -> bool:
        """Hotkey entry point. Returns False when the trigger was ignored."""
        now = self._clock()
        with self._lock:
            if self._last_trigger_at is not None and now - self._last_trigger_at < self._debounce_s:
                logger.info("Trigger ignored: pressed again within %.1fs", self._debounce_s)
                return False
            if self._processing or now < self._processing_until:
                logger.info("Trigger ignored: previous trigger still being processed")
                return False
            self._last_trigger_at = now
            self._processing = True
            recording = self._state == SessionState.RECORDING

        try:
            if recording:
                self.stop_session()
            else:
                self.start_session()
        finally:
            with self._lock:
                self._processing = False
                self._processing_until = self._clock() + self._processing_grace_s
        return True

    def start_session(self) -> bool:
        with self._lock:
            restart = self._state == SessionState.RECORDING
        if restart:
            logger.info("Recording already active, stopping it first")
            self.stop_session()
            self._sleep(self._restart_delay_s)

        self._wait_for_cancel_cooldown()

        with self._lock:
            if self._state != SessionState.IDLE:
                logger.info("Start ignored in state %s", self._state.value)
                return False
            self._session_counter += 1
            session = Session(session_id=self._session_counter)
            self._session = session
            self._transition(SessionState.CAPTURING)

        try:
            settings = self._config_store.load_settings()
            self._backend = self._guarded(ConfigurationError, self._backend_factory, settings.api_type, settings.api_key)
            self._guarded(RecordingError, self._recorder.sweep)
            self._sleep(self._sweep_settle_s)
            target = self._guarded(ResolutionError, self._tracker.resolve_target)

            with self._lock:
                if session.cancel_requested:
                    self._finish_cancel(session)
                    return False
                session.target_app = target
                session.audio_path = self._new_audio_path(session)
                self._guarded(RecordingError, self._recorder.start, session.audio_path, settings.audio_device)
                session.started_at = self._clock()
                self._transition(SessionState.RECORDING)
        except DictationError as exc:
            if session.cancel_requested:
                logger.info("Session %d cancelled while capturing: %s", session.session_id, exc.message)
                self._finish_cancel(session)
            else:
                self._fail(session, exc)
            return False

        logger.info("Session %d recording for %s", session.session_id, session.target_app)
        self._emit(StatusEvent.RECORDING_STARTED)
        return True

    def stop_session(self) -> bool:
        with self._lock:
            session = self._session
            if self._state != SessionState.RECORDING or session is None:
                return False
            backend = self._backend
            self._transition(SessionState.STOPPING)
            elapsed = self._clock() - session.started_at

        try:
            try:
                self._guarded(RecordingError, self._recorder.stop)
            finally:
                self._emit(StatusEvent.RECORDING_STOPPED)

            if elapsed < self._min_duration_s:
                logger.info("Recording too short (%.0fms)", elapsed * 1000)
                raise DurationError()
            audio = self._read_audio(session)

            self._transition(SessionState.TRANSCRIBING)
            self._emit(StatusEvent.TRANSCRIPTION_STARTED)
            if backend is None:
                raise ConfigurationError()
            text = self._guarded(TranscriptionError, backend.transcribe, audio)
            self._emit(StatusEvent.TRANSCRIPTION_COMPLETED, text=text)
            if not text.strip():
                raise NoSpeechError()

            self._transition(SessionState.INSERTING)
            self._insert(session, text)
            self._emit(StatusEvent.TEXT_INSERTED)
        except DictationError as exc:
            self._fail(session, exc)
            return False
        finally:
            self._cleanup(session)

        logger.info("Session %d inserted %d characters", session.session_id, len(text))
        self._transition(SessionState.IDLE)
        return True

    def cancel_session(self) -> bool:
        with self._lock:
            session = self._session
            if session is None:
                return False
            if self._state == SessionState.CAPTURING:
                # The capturing thread notices the flag before it starts the recorder.
                session.cancel_requested = True
                self._last_cancel_at = self._clock()
                return True
            if self._state != SessionState.RECORDING:
                logger.info("Cancel ignored in state %s", self._state.value)
                return False
            self._last_cancel_at = self._clock()
            self._transition(SessionState.CANCELLED)

        try:
            self._recorder.cancel()
        except Exception:
            logger.exception("Recorder cancel failed")
        self._cleanup(session)
        logger.info("Session %d cancelled", session.session_id)
        self._emit(StatusEvent.CANCEL_RECORDING_DIRECT)
        self._transition(SessionState.IDLE)
        return True

    def on_status_window_closed(self) -> bool:
        """Closing the status window while recording stops and transcribes."""
        if self._state != SessionState.RECORDING:
            return False
        return self.stop_session()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _wait_for_cancel_cooldown(self) -> None:
        with self._lock:
            last_cancel = self._last_cancel_at
        if last_cancel is None:
            return
        remaining = self._cancel_cooldown_s - (self._clock() - last_cancel)
        if remaining > 0:
            logger.info("Waiting %.0fms for the audio device after a cancel", remaining * 1000)
            self._sleep(remaining)

    def _new_audio_path(self, session: Session) -> str:
        stamp = int(time.time() * 1000)
        return os.path.join(self._temp_dir, f"speaknote_recording_{stamp}_{session.session_id}.wav")

    def _read_audio(self, session: Session) -> bytes:
        path = session.audio_path
        if not path or not os.path.exists(path):
            raise RecordingError("The recording file was not found.")
        try:
            with open(path, "rb") as fh:
                audio = fh.read()
        except OSError as exc:
            raise RecordingError(f"The recording file could not be read: {exc}") from exc
        if len(audio) < self._min_audio_bytes:
            raise DurationError("The recording is too short or empty. Please try again.")
        return audio

    def _insert(self, session: Session, text: str) -> None:
        target = session.target_app
        if not target:
            raise InsertionError("No target application found. Text could not be inserted.")
        if not self._guarded(InsertionError, self._tracker.is_running, target):
            raise InsertionError(f'Target application "{target}" is no longer available. Text could not be inserted.')
        result = self._guarded(InsertionError, self._injector.insert, target, text)
        if not result.success:
            raise InsertionError(f"Text could not be inserted: {result.reason}")

    def _finish_cancel(self, session: Session) -> None:
        self._transition(SessionState.CANCELLED)
        self._cleanup(session)
        logger.info("Session %d cancelled before recording", session.session_id)
        self._emit(StatusEvent.CANCEL_RECORDING_DIRECT)
        self._transition(SessionState.IDLE)

    def _fail(self, session: Session, exc: DictationError) -> None:
        logger.warning("Session %d failed [%s]: %s", session.session_id, exc.code, exc.message)
        self._transition(SessionState.FAILED)
        self._emit(exc.event, message=exc.message, code=exc.code)
        self._cleanup(session)
        self._transition(SessionState.IDLE)

    def _cleanup(self, session: Session) -> None:
        path = session.audio_path
        if not path:
            return
        try:
            if os.path.exists(path):
                os.remove(path)
                logger.debug("Deleted %s", path)
        except OSError as exc:
            logger.warning("Could not delete temporary audio %s: %s", path, exc)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _guarded(self, error_cls: type, func: Callable[..., Any], *args: Any) -> Any:
        """Call a collaborator, converting unexpected exceptions into ``error_cls``."""
        try:
            return func(*args)
        except DictationError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error from %s", getattr(func, "__name__", func))
            raise error_cls(str(exc) or None) from exc

    def _emit(self, event: StatusEvent, **data: Any) -> None:
        if not self._on_status:
            return
        try:
            self._on_status(event, data)
        except Exception:
            logger.exception("Status sink failed on %s", event.value)

    def _transition(self, to_state: SessionState) -> None:
        with self._lock:
            from_state = self._state
            if from_state == to_state:
                return
            self._state = to_state
            if self._session is not None:
                self._session.state = to_state
            if to_state == SessionState.IDLE:
                self._session = None
                self._backend = None
        logger.debug("State %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            try:
                self._on_state_change(from_state, to_state)
            except Exception:
                logger.exception("State callback failed")
