"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

from typing import Optional

from models import StatusEvent

CONFIG_ERROR = "CONFIG_ERROR"
RESOLUTION_ERROR = "RESOLUTION_ERROR"
RECORDING_ERROR = "RECORDING_ERROR"
DURATION_ERROR = "DURATION_ERROR"
TRANSCRIPTION_ERROR = "TRANSCRIPTION_ERROR"
INSERTION_ERROR = "INSERTION_ERROR"
NO_SPEECH = "NO_SPEECH"

ERROR_MESSAGES = {
    CONFIG_ERROR: "API key is missing. Please configure it in the settings.",
    RESOLUTION_ERROR: "No target application found for the text.",
    RECORDING_ERROR: "Recording failed.",
    DURATION_ERROR: "Recording too short. Please hold the hotkey a little longer.",
    TRANSCRIPTION_ERROR: "Transcription failed, please retry.",
    INSERTION_ERROR: "Text could not be inserted.",
    NO_SPEECH: "No speech was recognized.",
}

# Status event each error code is reported through.
ERROR_EVENTS = {
    CONFIG_ERROR: StatusEvent.RECORDING_ERROR,
    RESOLUTION_ERROR: StatusEvent.RECORDING_ERROR,
    RECORDING_ERROR: StatusEvent.RECORDING_ERROR,
    DURATION_ERROR: StatusEvent.TRANSCRIPTION_ERROR,
    TRANSCRIPTION_ERROR: StatusEvent.TRANSCRIPTION_ERROR,
    INSERTION_ERROR: StatusEvent.TRANSCRIPTION_ERROR,
    NO_SPEECH: StatusEvent.TRANSCRIPTION_ERROR,
}


class DictationError(Exception):
    code = RECORDING_ERROR

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(self.message)

    @property
    def event(self) -> StatusEvent:
        return ERROR_EVENTS[self.code]


class ConfigurationError(DictationError):
    code = CONFIG_ERROR


class ResolutionError(DictationError):
    code = RESOLUTION_ERROR


class RecordingError(DictationError):
    code = RECORDING_ERROR


class DurationError(DictationError):
    code = DURATION_ERROR


class TranscriptionError(DictationError):
    code = TRANSCRIPTION_ERROR

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoSpeechError(DictationError):
    code = NO_SPEECH


class InsertionError(DictationError):
    code = INSERTION_ERROR


class AutomationError(Exception):
    """An osascript / shell automation call failed."""
