"""Named commands sent by the UI and hotkey to the controller."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

from automation import open_url, run_osascript
from errors import AutomationError
from interfaces import ConfigStore
from models import API_OPTIONS
from recorder import list_input_devices
from session_controller import DictationController

logger = logging.getLogger(__name__)

TOGGLE_RECORDING = "toggle-recording"
CANCEL_RECORDING = "cancel-recording"
GET_AUDIO_DEVICES = "get-audio-devices"
SAVE_SETTINGS = "save-settings"
GET_API_OPTIONS = "get-api-options"
CLOSE_OVERLAY = "close-overlay"
FINISH_ONBOARDING = "finish-onboarding"
OPEN_ACCESSIBILITY_SETTINGS = "open-accessibility-settings"
OPEN_MICROPHONE_SETTINGS = "open-microphone-settings"
CHECK_ACCESSIBILITY_PERMISSION = "check-accessibility-permission"

ACCESSIBILITY_SETTINGS_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"
MICROPHONE_SETTINGS_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Microphone"

# Only answers "true" when GUI scripting (accessibility) is allowed for this process.
_ACCESSIBILITY_PROBE_SCRIPT = 'tell application "System Events" to get UI elements enabled'


class CommandDispatcher:
    def __init__(
        self,
        controller: DictationController,
        config_store: ConfigStore,
        list_devices: Callable[[], List[str]] = list_input_devices,
        open_url: Callable[[str], None] = open_url,
        run_script: Callable[[str], str] = run_osascript,
    ) -> None:
        self._controller = controller
        self._config_store = config_store
        self._list_devices = list_devices
        self._open_url = open_url
        self._run_script = run_script
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            TOGGLE_RECORDING: self._toggle_recording,
            CANCEL_RECORDING: self._cancel_recording,
            GET_AUDIO_DEVICES: self._get_audio_devices,
            SAVE_SETTINGS: self._save_settings,
            GET_API_OPTIONS: self._get_api_options,
            CLOSE_OVERLAY: self._close_overlay,
            FINISH_ONBOARDING: self._finish_onboarding,
            OPEN_ACCESSIBILITY_SETTINGS: self._open_accessibility_settings,
            OPEN_MICROPHONE_SETTINGS: self._open_microphone_settings,
            CHECK_ACCESSIBILITY_PERMISSION: self._check_accessibility_permission,
        }

    def dispatch(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown command: {name}")
        logger.debug("Command %s", name)
        return handler(payload or {})

    def _toggle_recording(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self._controller.is_recording:
            self._controller.stop_session()
        else:
            self._controller.start_session()
        return {"recording": self._controller.is_recording}

    def _cancel_recording(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._controller.cancel_session()
        return {"success": True}

    def _get_audio_devices(self, payload: Dict[str, Any]) -> List[str]:
        try:
            return self._list_devices()
        except Exception:
            logger.exception("Listing audio devices failed")
            return []

    def _save_settings(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._config_store.save_settings(
            api_key=str(payload.get("apiKey", "")),
            api_type=str(payload.get("apiType", "")),
            audio_device=str(payload.get("audioDevice", "")),
        )
        return {"success": True}

    def _get_api_options(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [asdict(option) for option in API_OPTIONS]

    def _close_overlay(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._controller.on_status_window_closed()
        return {"success": True}

    def _finish_onboarding(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._config_store.set_onboarding_completed(True)
        return {"success": True}

    def _open_accessibility_settings(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._open_settings_pane(ACCESSIBILITY_SETTINGS_URL)

    def _open_microphone_settings(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._open_settings_pane(MICROPHONE_SETTINGS_URL)

    def _open_settings_pane(self, url: str) -> Dict[str, Any]:
        try:
            self._open_url(url)
        except AutomationError as exc:
            logger.warning("Could not open System Settings: %s", exc)
            return {"success": False, "error": str(exc)}
        return {"success": True}

    def _check_accessibility_permission(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            enabled = self._run_script(_ACCESSIBILITY_PROBE_SCRIPT).strip().lower() == "true"
        except AutomationError as exc:
            logger.info("Accessibility check failed: %s", exc)
            enabled = False
        return {"hasPermission": enabled}
