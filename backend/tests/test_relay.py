"""Tests for the /ws/transcribe relay.

The provider socket and the translator are replaced on app.state, so these
run without network access.
"""

import asyncio
import base64
import json
import time

import pytest
from fastapi import WebSocketDisconnect

from conftest import FakeTranslator, FakeUpstream, RecordingConnector


FINAL_ONE = {
    "message_type": "FinalTranscript",
    "text": "hola amigo",
    "confidence": 0.82,
    "audio_start": 120,
    "audio_end": 1400,
}
FINAL_TWO = {
    "message_type": "FinalTranscript",
    "text": "buenos días",
    "audio_start": 1500,
    "audio_end": 2600,
}


@pytest.fixture
def translator(app) -> FakeTranslator:
    fake = FakeTranslator()
    app.state.translator = fake
    return fake


def _use_upstream(app, upstream=None, error=None) -> RecordingConnector:
    connector = RecordingConnector(upstream=upstream, error=error)
    app.state.upstream_connector = connector
    return connector


def _authenticate(ws, token):
    ws.send_json({"type": "auth", "token": token})
    assert ws.receive_json() == {"type": "auth_success"}


def _start(ws, **fields):
    ws.send_json({"type": "start", "sessionId": 7, "sourceLanguage": "es", "targetLanguage": "en", **fields})
    assert ws.receive_json() == {"type": "ready"}


def test_start_requires_authentication(client, app, translator):
    connector = _use_upstream(app, FakeUpstream())
    with client.websocket_connect("/ws/transcribe") as ws:
        ws.send_json({"type": "start", "sourceLanguage": "es", "targetLanguage": "en"})
        assert ws.receive_json() == {"type": "error", "message": "Not authenticated"}
        # Connection stays usable
        ws.send_json({"type": "start"})
        assert ws.receive_json() == {"type": "error", "message": "Not authenticated"}
    assert connector.calls == 0


def test_invalid_token_reports_error_and_closes(client, app, translator):
    _use_upstream(app, FakeUpstream())
    with client.websocket_connect("/ws/transcribe") as ws:
        ws.send_json({"type": "auth", "token": "forged"})
        assert ws.receive_json() == {"type": "error", "message": "Authentication failed"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_final_results_are_translated_once_each(client, app, token, translator):
    upstream = FakeUpstream(
        messages=[
            {"message_type": "SessionBegins", "session_id": "abc"},
            {"message_type": "PartialTranscript", "text": "hola"},
            FINAL_ONE,
            {"message_type": "FinalTranscript", "text": ""},
            "not json",
            FINAL_TWO,
        ]
    )
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02\x03\x04")

        first = ws.receive_json()
        second = ws.receive_json()
        assert first == {
            "type": "translation",
            "speaker": "A",
            "originalText": "hola amigo",
            "translatedText": "[en] hola amigo",
            "confidence": 0.82,
            "startTime": 120,
            "endTime": 1400,
        }
        assert second["originalText"] == "buenos días"
        assert second["translatedText"] == "[en] buenos días"
        assert second["confidence"] == 0.9
        assert (second["startTime"], second["endTime"]) == (1500, 2600)

        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()

    assert translator.calls == [("hola amigo", "es", "en"), ("buenos días", "es", "en")]
    assert upstream.closed
    assert upstream.sent[-1] == {"terminate_session": True}


def test_audio_is_forwarded_base64_encoded(client, app, token, translator):
    upstream = FakeUpstream(messages=[FINAL_ONE])
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x00\x10\xff\x7f")
        ws.receive_json()
        ws.send_bytes(b"\x05\x06")
        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "stopped"}

    assert upstream.audio_frames == [
        {"audio_data": base64.b64encode(b"\x00\x10\xff\x7f").decode("ascii")},
        {"audio_data": base64.b64encode(b"\x05\x06").decode("ascii")},
    ]


def test_audio_before_start_is_dropped(client, app, token, translator):
    upstream = FakeUpstream()
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        ws.send_bytes(b"\x01\x02")
        _authenticate(ws, token)
        ws.send_bytes(b"\x03\x04")
        _start(ws)
        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "stopped"}

    assert upstream.audio_frames == []
    assert upstream.sent == [{"terminate_session": True}]


def test_client_disconnect_closes_upstream(client, app, token, translator):
    upstream = FakeUpstream()
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02")

    assert upstream.closed


def test_upstream_close_stops_client(client, app, token, translator):
    upstream = FakeUpstream(messages=[FINAL_ONE], close_after_script=True)
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02")
        assert ws.receive_json()["type"] == "translation"
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()

    assert upstream.closed


def test_upstream_transport_error_reports_error_and_stops(client, app, token, translator):
    upstream = FakeUpstream(fail_with=OSError("connection reset"))
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02")
        assert ws.receive_json() == {"type": "error", "message": "Transcription service error"}
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()

    assert upstream.closed


def test_upstream_connect_failure(client, app, token, translator):
    _use_upstream(app, error=OSError("connection refused"))

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        ws.send_json({"type": "start", "sourceLanguage": "es", "targetLanguage": "en"})
        assert ws.receive_json() == {"type": "error", "message": "Transcription service error"}
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_start_without_provider_key(client, app, token, translator):
    connector = _use_upstream(app, FakeUpstream())
    app.state.settings.assemblyai_api_key = None

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        ws.send_json({"type": "start"})
        assert ws.receive_json() == {"type": "error", "message": "Transcription service not configured"}
    assert connector.calls == 0


def test_second_start_while_streaming_is_rejected(client, app, token, translator):
    connector = _use_upstream(app, FakeUpstream())

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_json({"type": "start"})
        assert ws.receive_json() == {"type": "error", "message": "Already streaming"}
    assert connector.calls == 1


def test_provider_error_message_is_forwarded(client, app, token, translator):
    upstream = FakeUpstream(messages=[{"error": "Audio too short"}])
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02")
        assert ws.receive_json() == {
            "type": "error",
            "message": "Transcription service error: Audio too short",
        }


def test_control_message_sent_as_binary_frame(client, app, token, translator):
    _use_upstream(app, FakeUpstream())
    with client.websocket_connect("/ws/transcribe") as ws:
        ws.send_bytes(json.dumps({"type": "auth", "token": token}).encode("utf-8"))
        assert ws.receive_json() == {"type": "auth_success"}


def test_invalid_and_unknown_messages(client, app, translator):
    _use_upstream(app, FakeUpstream())
    with client.websocket_connect("/ws/transcribe") as ws:
        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "message": "Invalid message"}
        ws.send_text("[1, 2]")
        assert ws.receive_json() == {"type": "error", "message": "Invalid message"}
        ws.send_json({"type": "dance"})
        assert ws.receive_json() == {"type": "error", "message": "Unknown message type: dance"}


def test_stop_before_start_closes_connection(client, app, token, translator):
    connector = _use_upstream(app, FakeUpstream())
    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()
    assert connector.calls == 0


class SlowTranslator(FakeTranslator):
    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        await asyncio.sleep(0.3)
        return await super().translate(text, source_language, target_language)


def test_stop_waits_for_pending_translation(client, app, token):
    translator = SlowTranslator()
    app.state.translator = translator
    upstream = FakeUpstream(messages=[FINAL_ONE])
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(b"\x01\x02")
        # Let the final result reach the translator before stopping
        time.sleep(0.1)
        ws.send_json({"type": "stop"})

        translation = ws.receive_json()
        assert translation["type"] == "translation"
        assert translation["translatedText"] == "[en] hola amigo"
        assert ws.receive_json() == {"type": "stopped"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()

    assert translator.calls == [("hola amigo", "es", "en")]
    assert upstream.closed


@pytest.mark.parametrize("frame", [b"{\x00\x01\x02", b"{not json"])
def test_brace_prefixed_audio_is_forwarded(client, app, token, translator, frame):
    upstream = FakeUpstream()
    _use_upstream(app, upstream)

    with client.websocket_connect("/ws/transcribe") as ws:
        _authenticate(ws, token)
        _start(ws)
        ws.send_bytes(frame)
        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "stopped"}

    assert upstream.audio_frames == [{"audio_data": base64.b64encode(frame).decode("ascii")}]
