from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from commands import (
    ACCESSIBILITY_SETTINGS_URL,
    CANCEL_RECORDING,
    CHECK_ACCESSIBILITY_PERMISSION,
    CLOSE_OVERLAY,
    FINISH_ONBOARDING,
    GET_API_OPTIONS,
    GET_AUDIO_DEVICES,
    MICROPHONE_SETTINGS_URL,
    OPEN_ACCESSIBILITY_SETTINGS,
    OPEN_MICROPHONE_SETTINGS,
    SAVE_SETTINGS,
    TOGGLE_RECORDING,
    CommandDispatcher,
)
from config import JsonConfigStore
from errors import AutomationError


def make_dispatcher(tmp_path: Path, recording: bool = False, devices=None, open_url=None, run_script=None):  # noqa: ANN001, ANN201
    controller = MagicMock()
    controller.is_recording = recording
    store = JsonConfigStore(path=tmp_path / "config.json")
    list_devices = devices or (lambda: ["MacBook Microphone"])
    dispatcher = CommandDispatcher(
        controller,
        store,
        list_devices=list_devices,
        open_url=open_url or MagicMock(),
        run_script=run_script or MagicMock(return_value="true"),
    )
    return dispatcher, controller, store


def test_toggle_starts_when_idle(tmp_path: Path) -> None:
    dispatcher, controller, _ = make_dispatcher(tmp_path)
    dispatcher.dispatch(TOGGLE_RECORDING)
    controller.start_session.assert_called_once()
    controller.stop_session.assert_not_called()


def test_toggle_stops_when_recording(tmp_path: Path) -> None:
    dispatcher, controller, _ = make_dispatcher(tmp_path, recording=True)
    dispatcher.dispatch(TOGGLE_RECORDING)
    controller.stop_session.assert_called_once()


def test_cancel(tmp_path: Path) -> None:
    dispatcher, controller, _ = make_dispatcher(tmp_path)
    assert dispatcher.dispatch(CANCEL_RECORDING) == {"success": True}
    controller.cancel_session.assert_called_once()


def test_close_overlay_delegates_to_controller(tmp_path: Path) -> None:
    dispatcher, controller, _ = make_dispatcher(tmp_path)
    dispatcher.dispatch(CLOSE_OVERLAY)
    controller.on_status_window_closed.assert_called_once()


def test_get_audio_devices(tmp_path: Path) -> None:
    dispatcher, _, _ = make_dispatcher(tmp_path)
    assert dispatcher.dispatch(GET_AUDIO_DEVICES) == ["MacBook Microphone"]


def test_get_audio_devices_failure_returns_empty(tmp_path: Path) -> None:
    def broken() -> list:
        raise OSError("no audio")

    dispatcher, _, _ = make_dispatcher(tmp_path, devices=broken)
    assert dispatcher.dispatch(GET_AUDIO_DEVICES) == []


def test_save_settings_persists(tmp_path: Path) -> None:
    dispatcher, _, store = make_dispatcher(tmp_path)
    result = dispatcher.dispatch(
        SAVE_SETTINGS, {"apiKey": "sk-1", "apiType": "elevenlabs", "audioDevice": "USB Mic"}
    )

    assert result == {"success": True}
    settings = store.load_settings()
    assert (settings.api_key, settings.api_type, settings.audio_device) == ("sk-1", "elevenlabs", "USB Mic")


def test_api_options(tmp_path: Path) -> None:
    dispatcher, _, _ = make_dispatcher(tmp_path)
    options = dispatcher.dispatch(GET_API_OPTIONS)
    assert [o["value"] for o in options] == ["openai", "elevenlabs", "dashscope"]
    assert options[0]["default"] is True


def test_finish_onboarding(tmp_path: Path) -> None:
    dispatcher, _, store = make_dispatcher(tmp_path)
    dispatcher.dispatch(FINISH_ONBOARDING)
    assert store.load_settings().onboarding_completed is True


def test_unknown_command(tmp_path: Path) -> None:
    dispatcher, _, _ = make_dispatcher(tmp_path)
    with pytest.raises(ValueError, match="Unknown command"):
        dispatcher.dispatch("format-disk")


def test_open_accessibility_settings(tmp_path: Path) -> None:
    open_url = MagicMock()
    dispatcher, _, _ = make_dispatcher(tmp_path, open_url=open_url)

    assert dispatcher.dispatch(OPEN_ACCESSIBILITY_SETTINGS) == {"success": True}
    open_url.assert_called_once_with(ACCESSIBILITY_SETTINGS_URL)
    assert ACCESSIBILITY_SETTINGS_URL.startswith("x-apple.systempreferences:")


def test_open_microphone_settings(tmp_path: Path) -> None:
    open_url = MagicMock()
    dispatcher, _, _ = make_dispatcher(tmp_path, open_url=open_url)

    dispatcher.dispatch(OPEN_MICROPHONE_SETTINGS)
    open_url.assert_called_once_with(MICROPHONE_SETTINGS_URL)
    assert MICROPHONE_SETTINGS_URL.endswith("Privacy_Microphone")


def test_open_settings_failure_is_reported(tmp_path: Path) -> None:
    open_url = MagicMock(side_effect=AutomationError("open failed"))
    dispatcher, _, _ = make_dispatcher(tmp_path, open_url=open_url)

    result = dispatcher.dispatch(OPEN_ACCESSIBILITY_SETTINGS)
    assert result == {"success": False, "error": "open failed"}


def test_accessibility_permission_granted(tmp_path: Path) -> None:
    run_script = MagicMock(return_value="true")
    dispatcher, _, _ = make_dispatcher(tmp_path, run_script=run_script)

    assert dispatcher.dispatch(CHECK_ACCESSIBILITY_PERMISSION) == {"hasPermission": True}
    assert "System Events" in run_script.call_args[0][0]


def test_accessibility_permission_disabled(tmp_path: Path) -> None:
    dispatcher, _, _ = make_dispatcher(tmp_path, run_script=MagicMock(return_value="false"))
    assert dispatcher.dispatch(CHECK_ACCESSIBILITY_PERMISSION) == {"hasPermission": False}


def test_accessibility_permission_denied_script(tmp_path: Path) -> None:
    run_script = MagicMock(side_effect=AutomationError("not allowed assistive access"))
    dispatcher, _, _ = make_dispatcher(tmp_path, run_script=run_script)
    assert dispatcher.dispatch(CHECK_ACCESSIBILITY_PERMISSION) == {"hasPermission": False}
