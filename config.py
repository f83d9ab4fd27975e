"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from models import Settings, default_api_type

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    override = os.getenv("SPEAKNOTE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "speaknote" / "config.json"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or default_config_path()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load_settings(self) -> Settings:
        data = self._read_all()
        return Settings(
            api_key=str(data.get("api_key", "")),
            api_type=str(data.get("api_type", default_api_type())),
            audio_device=str(data.get("audio_device", "")),
            onboarding_completed=bool(data.get("onboarding_completed", False)),
            hotkey=str(data.get("hotkey", "<f5>")),
        )

    def save_settings(self, api_key: str, api_type: str, audio_device: str) -> None:
        data = self._read_all()
        data["api_key"] = api_key
        data["api_type"] = api_type
        data["audio_device"] = audio_device
        self._write_all(data)

    def set_onboarding_completed(self, value: bool = True) -> None:
        data = self._read_all()
        data["onboarding_completed"] = value
        self._write_all(data)

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
