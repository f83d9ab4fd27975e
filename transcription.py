"""Cloud speech-to-text backends.

Every backend takes a complete WAV payload and returns plain text.  The
HTTP backends post the audio as a multipart file part and read the ``text``
field of the JSON response; a missing or empty field is an empty
transcript, not an error.  Backends are picked from ``API_OPTIONS`` by
``create_backend``, which rejects unknown ids and missing keys before any
network traffic happens.
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Any, Dict, Optional

import requests

from errors import ConfigurationError, TranscriptionError
from models import API_OPTIONS

logger = logging.getLogger(__name__)

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

DEFAULT_TIMEOUT_S = 30.0


class BaseTranscriptionBackend:
    name = "base"

    def transcribe(self, audio: bytes) -> str:
        raise NotImplementedError


class HttpTranscriptionBackend(BaseTranscriptionBackend):
    endpoint = ""
    file_field = "file"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._session = session

    def headers(self) -> Dict[str, str]:
        return {}

    def form_fields(self) -> Dict[str, str]:
        return {}

    def transcribe(self, audio: bytes) -> str:
        if self._session is not None:
            return self._upload(self._session, audio)
        with requests.Session() as session:
            return self._upload(session, audio)

    def _upload(self, session: requests.Session, audio: bytes) -> str:
        files = {self.file_field: ("audio.wav", audio, "audio/wav")}
        logger.debug("Uploading %d bytes to %s", len(audio), self.name)
        try:
            response = session.post(
                self.endpoint,
                headers=self.headers(),
                data=self.form_fields(),
                files=files,
                timeout=self._timeout_s,
            )
        except requests.Timeout as exc:
            raise TranscriptionError(f"{self.name} API timed out after {self._timeout_s:g}s") from exc
        except requests.RequestException as exc:
            raise TranscriptionError(f"{self.name} API request failed: {exc}") from exc

        if not response.ok:
            logger.warning("%s API error: %s %s", self.name, response.status_code, response.reason)
            raise TranscriptionError(
                f"{self.name} API error: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionError(f"{self.name} API returned invalid JSON") from exc
        return _text_field(payload)


class OpenAIWhisperBackend(HttpTranscriptionBackend):
    name = "OpenAI"
    endpoint = "https://api.openai.com/v1/audio/transcriptions"
    file_field = "file"

    def __init__(self, api_key: str, model: str = "whisper-1", **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self._model = model

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def form_fields(self) -> Dict[str, str]:
        return {"model": self._model}


class ElevenLabsScribeBackend(HttpTranscriptionBackend):
    name = "ElevenLabs"
    endpoint = "https://api.elevenlabs.io/v1/speech-to-text"
    file_field = "audio"

    def __init__(self, api_key: str, model_id: str = "scribe_v1", **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self._model_id = model_id

    def headers(self) -> Dict[str, str]:
        return {"xi-api-key": self._api_key}

    def form_fields(self) -> Dict[str, str]:
        return {"model_id": self._model_id}


class DashscopeBackend(BaseTranscriptionBackend):
    """Qwen ASR through the DashScope SDK (non-streaming)."""

    name = "DashScope"

    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s

    def transcribe(self, audio: bytes) -> str:
        if dashscope is None:
            raise TranscriptionError("dashscope is not installed")
        wav_b64 = base64.b64encode(audio).decode("ascii")
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=self._api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_b64}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False},
                timeout=self._timeout_s,
            )
        except Exception as exc:
            raise TranscriptionError(f"{self.name} API request failed: {exc}") from exc

        status = getattr(response, "status_code", 200)
        if status != 200:
            code = getattr(response, "code", "")
            message = getattr(response, "message", "")
            raise TranscriptionError(
                f"{self.name} API error: {status} {code} {message}".strip(),
                status_code=status,
            )
        return self._extract_text(response)

    def _extract_text(self, response: object) -> str:
        """Pull text from a dashscope message-format response."""
        if not isinstance(response, dict):
            return ""
        output = response.get("output") or {}
        choices = output.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") or []
        if not content:
            return ""
        value = content[0]
        if isinstance(value, dict):
            return str(value.get("text") or "")
        return ""


_BACKENDS = {
    "openai": OpenAIWhisperBackend,
    "elevenlabs": ElevenLabsScribeBackend,
    "dashscope": DashscopeBackend,
}


def supported_backends() -> list[str]:
    return [option.value for option in API_OPTIONS if option.value in _BACKENDS]


def create_backend(api_type: str, api_key: str, **kwargs: Any) -> BaseTranscriptionBackend:
    """Build the backend for ``api_type``. Raises ConfigurationError, never touches the network."""
    backend_cls = _BACKENDS.get(api_type)
    if backend_cls is None:
        raise ConfigurationError(f"Unsupported transcription API: {api_type!r}")
    if not api_key and api_type == "dashscope":
        api_key = os.getenv("DASHSCOPE_API_KEY", "")
    if not api_key:
        raise ConfigurationError()
    return backend_cls(api_key, **kwargs)


def _text_field(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    text = payload.get("text")
    return str(text) if text else ""
