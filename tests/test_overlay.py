from __future__ import annotations

from models import StatusEvent
from overlay import status_message


def test_error_events_show_message() -> None:
    assert status_message(StatusEvent.TRANSCRIPTION_ERROR, {"message": "OpenAI API error: 401"}) == "OpenAI API error: 401"
    assert status_message(StatusEvent.RECORDING_ERROR, {"message": "sox missing"}) == "sox missing"


def test_completed_event_shows_transcript() -> None:
    assert status_message(StatusEvent.TRANSCRIPTION_COMPLETED, {"text": "hello world"}) == "hello world"


def test_every_event_has_text() -> None:
    for event in StatusEvent:
        data = {"message": "m", "text": "t"}
        assert status_message(event, data)
