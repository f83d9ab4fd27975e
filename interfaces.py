"""Protocol interfaces used by DictationController."""

from __future__ import annotations

from typing import Protocol

from models import InsertResult, Settings


class Recorder(Protocol):
    def start(self, path: str, device: str = "") -> None: ...

    def stop(self) -> None: ...

    def cancel(self) -> None: ...

    def sweep(self) -> None: ...


class AppTracker(Protocol):
    def resolve_target(self) -> str: ...

    def is_running(self, name: str) -> bool: ...


class TranscriptionBackend(Protocol):
    def transcribe(self, audio: bytes) -> str: ...


class TextInjector(Protocol):
    def insert(self, app_name: str, text: str) -> InsertResult: ...


class ConfigStore(Protocol):
    def load_settings(self) -> Settings: ...

    def save_settings(self, api_key: str, api_type: str, audio_device: str) -> None: ...

    def set_onboarding_completed(self, value: bool = True) -> None: ...
