"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    RECORDING = "RECORDING"
    STOPPING = "STOPPING"
    TRANSCRIBING = "TRANSCRIBING"
    INSERTING = "INSERTING"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class StatusEvent(str, Enum):
    RECORDING_STARTED = "recording-started"
    RECORDING_STOPPED = "recording-stopped"
    RECORDING_ERROR = "recording-error"
    TRANSCRIPTION_STARTED = "transcription-started"
    TRANSCRIPTION_COMPLETED = "transcription-completed"
    TRANSCRIPTION_ERROR = "transcription-error"
    TEXT_INSERTED = "text-inserted"
    CANCEL_RECORDING_DIRECT = "cancel-recording-direct"


@dataclass
class Session:
    session_id: int
    state: SessionState = SessionState.IDLE
    started_at: float = 0.0
    audio_path: Optional[str] = None
    target_app: Optional[str] = None
    cancel_requested: bool = False


@dataclass
class Settings:
    api_key: str = ""
    api_type: str = "openai"
    audio_device: str = ""
    onboarding_completed: bool = False
    hotkey: str = "<f5>"


@dataclass(frozen=True)
class ApiOption:
    value: str
    name: str
    default: bool = False


API_OPTIONS = (
    ApiOption(value="openai", name="OpenAI Whisper", default=True),
    ApiOption(value="elevenlabs", name="ElevenLabs Scribe"),
    ApiOption(value="dashscope", name="Qwen ASR (DashScope)"),
)


def default_api_type() -> str:
    for option in API_OPTIONS:
        if option.default:
            return option.value
    return API_OPTIONS[0].value


@dataclass
class InsertResult:
    success: bool
    reason: str
    clipboard_restored: bool
