"""Tests for the transcription backends."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from errors import ConfigurationError, TranscriptionError
from transcription import (
    DashscopeBackend,
    ElevenLabsScribeBackend,
    OpenAIWhisperBackend,
    create_backend,
    supported_backends,
)

AUDIO = b"RIFF" + b"\x00" * 2000


def _response(status: int = 200, payload: object = None, reason: str = "OK") -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.reason = reason
    response.json.return_value = payload if payload is not None else {}
    return response


# ---------------------------------------------------------------
# create_backend
# ---------------------------------------------------------------

def test_create_backend_picks_class_by_id() -> None:
    assert isinstance(create_backend("openai", "k"), OpenAIWhisperBackend)
    assert isinstance(create_backend("elevenlabs", "k"), ElevenLabsScribeBackend)
    assert isinstance(create_backend("dashscope", "k"), DashscopeBackend)


def test_create_backend_rejects_unknown_id() -> None:
    with pytest.raises(ConfigurationError, match="Unsupported"):
        create_backend("google", "k")


def test_create_backend_rejects_missing_key() -> None:
    with pytest.raises(ConfigurationError):
        create_backend("openai", "")


@patch.dict("os.environ", {"DASHSCOPE_API_KEY": "env-key"}, clear=False)
def test_dashscope_key_falls_back_to_environment() -> None:
    assert isinstance(create_backend("dashscope", ""), DashscopeBackend)


def test_supported_backends_follow_api_options() -> None:
    assert supported_backends() == ["openai", "elevenlabs", "dashscope"]


# ---------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------

def test_openai_posts_multipart_with_bearer_auth() -> None:
    session = MagicMock()
    session.post.return_value = _response(payload={"text": "hello world"})

    backend = OpenAIWhisperBackend("sk-test", session=session, timeout_s=12)
    assert backend.transcribe(AUDIO) == "hello world"

    args, kwargs = session.post.call_args
    assert args[0] == "https://api.openai.com/v1/audio/transcriptions"
    assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
    assert kwargs["data"] == {"model": "whisper-1"}
    assert kwargs["files"] == {"file": ("audio.wav", AUDIO, "audio/wav")}
    assert kwargs["timeout"] == 12


def test_http_error_carries_status_and_reason() -> None:
    session = MagicMock()
    session.post.return_value = _response(status=401, reason="Unauthorized")

    backend = OpenAIWhisperBackend("bad", session=session)
    with pytest.raises(TranscriptionError) as info:
        backend.transcribe(AUDIO)

    assert info.value.status_code == 401
    assert "401 Unauthorized" in info.value.message
    session.post.return_value.json.assert_not_called()


def test_missing_text_field_is_empty_transcript() -> None:
    session = MagicMock()
    session.post.return_value = _response(payload={"language": "en"})

    assert OpenAIWhisperBackend("k", session=session).transcribe(AUDIO) == ""


def test_null_text_field_is_empty_transcript() -> None:
    session = MagicMock()
    session.post.return_value = _response(payload={"text": None})

    assert OpenAIWhisperBackend("k", session=session).transcribe(AUDIO) == ""


def test_network_failure_becomes_transcription_error() -> None:
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TranscriptionError, match="connection refused"):
        OpenAIWhisperBackend("k", session=session).transcribe(AUDIO)


def test_timeout_becomes_transcription_error() -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout()

    with pytest.raises(TranscriptionError, match="timed out"):
        OpenAIWhisperBackend("k", session=session, timeout_s=5).transcribe(AUDIO)


def test_invalid_json_becomes_transcription_error() -> None:
    session = MagicMock()
    response = _response()
    response.json.side_effect = ValueError("no json")
    session.post.return_value = response

    with pytest.raises(TranscriptionError, match="invalid JSON"):
        OpenAIWhisperBackend("k", session=session).transcribe(AUDIO)


@patch("transcription.requests.Session")
def test_each_upload_uses_a_closed_session(session_cls: MagicMock) -> None:
    scoped = session_cls.return_value.__enter__.return_value
    scoped.post.return_value = _response(payload={"text": "hello"})
    backend = OpenAIWhisperBackend("k")

    assert backend.transcribe(AUDIO) == "hello"
    assert backend.transcribe(AUDIO) == "hello"

    assert session_cls.call_count == 2
    assert session_cls.return_value.__exit__.call_count == 2


@patch("transcription.requests.Session")
def test_session_closed_when_upload_fails(session_cls: MagicMock) -> None:
    scoped = session_cls.return_value.__enter__.return_value
    scoped.post.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TranscriptionError):
        OpenAIWhisperBackend("k").transcribe(AUDIO)
    session_cls.return_value.__exit__.assert_called_once()


# ---------------------------------------------------------------
# ElevenLabs
# ---------------------------------------------------------------

def test_elevenlabs_uses_custom_header_and_audio_field() -> None:
    session = MagicMock()
    session.post.return_value = _response(payload={"text": "hallo welt"})

    backend = ElevenLabsScribeBackend("xi-key", session=session)
    assert backend.transcribe(AUDIO) == "hallo welt"

    args, kwargs = session.post.call_args
    assert args[0] == "https://api.elevenlabs.io/v1/speech-to-text"
    assert kwargs["headers"] == {"xi-api-key": "xi-key"}
    assert "audio" in kwargs["files"]
    assert kwargs["data"] == {"model_id": "scribe_v1"}


def test_elevenlabs_server_error() -> None:
    session = MagicMock()
    session.post.return_value = _response(status=503, reason="Service Unavailable")

    with pytest.raises(TranscriptionError, match="ElevenLabs API error: 503"):
        ElevenLabsScribeBackend("xi-key", session=session).transcribe(AUDIO)


# ---------------------------------------------------------------
# DashScope
# ---------------------------------------------------------------

class _DashscopeResponse(dict):
    def __init__(self, status_code: int = 200, text: str = "", code: str = "", message: str = "") -> None:
        super().__init__(output={"choices": [{"message": {"content": [{"text": text}]}}]})
        self.status_code = status_code
        self.code = code
        self.message = message


@patch("transcription.dashscope")
def test_dashscope_returns_message_text(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = _DashscopeResponse(text="你好世界")

    assert DashscopeBackend("k").transcribe(AUDIO) == "你好世界"
    kwargs = mock_ds.MultiModalConversation.call.call_args.kwargs
    assert kwargs["model"] == "qwen3-asr-flash"
    assert kwargs["api_key"] == "k"


@patch("transcription.dashscope")
def test_dashscope_error_status(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = _DashscopeResponse(
        status_code=401, code="InvalidApiKey", message="Invalid API-key provided."
    )

    with pytest.raises(TranscriptionError) as info:
        DashscopeBackend("bad").transcribe(AUDIO)
    assert info.value.status_code == 401
    assert "InvalidApiKey" in info.value.message


@patch("transcription.dashscope")
def test_dashscope_sdk_exception(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = ConnectionError("network timeout")

    with pytest.raises(TranscriptionError, match="network timeout"):
        DashscopeBackend("k").transcribe(AUDIO)


@patch("transcription.dashscope", None)
def test_dashscope_not_installed() -> None:
    with pytest.raises(TranscriptionError, match="not installed"):
        DashscopeBackend("k").transcribe(AUDIO)


def test_dashscope_extract_text_handles_empty_choices() -> None:
    backend = DashscopeBackend("k")
    assert backend._extract_text({"output": {"choices": []}}) == ""
    assert backend._extract_text("not a dict") == ""
