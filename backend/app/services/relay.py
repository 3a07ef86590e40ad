"""
Per-connection bridge between a client WebSocket and the realtime
transcription provider.

Lifecycle: unauthenticated -> authenticated -> streaming -> stopped.

- Client text frames are JSON control messages tagged by ``type``.
- Client binary frames are raw PCM audio, forwarded base64-encoded upstream.
- Provider final transcripts are translated and sent back as one
  ``translation`` message each.
- ``stop``, or either socket closing, tears down both ends. No retries.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from app.config import Settings
from app.services.auth import decode_access_token
from app.services.languages import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE
from app.services.quality import DEFAULT_CONFIDENCE
from app.services.translation import LemurTranslator

logger = logging.getLogger("app.relay")

# Any object with async send(), async close() and async iteration over
# incoming messages; websockets' ClientConnection satisfies it.
UpstreamConnector = Callable[[Settings], Awaitable[Any]]

TRANSPORT_ERRORS = (OSError, WebSocketException, asyncio.TimeoutError)


class RelayState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    STREAMING = "streaming"
    STOPPED = "stopped"


@dataclass
class StreamConfig:
    session_id: Optional[int]
    source_language: str
    target_language: str


async def connect_assemblyai(settings: Settings) -> Any:
    url = f"{settings.realtime_url}?sample_rate={settings.sample_rate}"
    return await ws_connect(url, additional_headers={"Authorization": settings.assemblyai_api_key or ""})


class TranscriptionRelay:
    def __init__(
        self,
        websocket: WebSocket,
        settings: Settings,
        translator: LemurTranslator,
        connector: UpstreamConnector = connect_assemblyai,
    ) -> None:
        self.websocket = websocket
        self.settings = settings
        self.translator = translator
        self.connector = connector

        self.state = RelayState.UNAUTHENTICATED
        self.user_id: Optional[str] = None
        self.config: Optional[StreamConfig] = None

        self._upstream: Optional[Any] = None
        self._pump_task: Optional[asyncio.Task] = None

    # -- client side ---------------------------------------------------

    def _client_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_message(self, msg_type: str, **fields: Any) -> None:
        """Send a JSON message to the client."""
        if not self._client_open():
            return
        try:
            await self.websocket.send_json({"type": msg_type, **fields})
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            logger.warning(f"Failed to send '{msg_type}' to client: {e}")

    async def send_error(self, message: str) -> None:
        await self.send_message("error", message=message)

    async def run(self) -> None:
        """Process client frames until either side ends the session."""
        try:
            while self.state != RelayState.STOPPED:
                message = await self.websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    logger.info("Client disconnected from transcription socket")
                    break
                if message.get("text") is not None:
                    await self.handle_text(message["text"])
                elif message.get("bytes") is not None:
                    await self.handle_binary(message["bytes"])
        finally:
            await self.shutdown()

    async def handle_text(self, text: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            await self.send_error("Invalid message")
            return
        if not isinstance(message, dict):
            await self.send_error("Invalid message")
            return
        await self.handle_control(message)

    async def handle_binary(self, data: bytes) -> None:
        # Some clients send control JSON as binary frames
        if data[:1] == b"{":
            try:
                message = json.loads(data.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                message = None
            if isinstance(message, dict):
                await self.handle_control(message)
                return

        if self.state != RelayState.STREAMING or self._upstream is None:
            logger.debug("Dropping audio frame received while not streaming")
            return

        payload = json.dumps({"audio_data": base64.b64encode(data).decode("ascii")})
        try:
            await self._upstream.send(payload)
        except TRANSPORT_ERRORS as e:
            logger.error(f"Failed to forward audio upstream: {e}")
            await self.send_error("Transcription service error")
            await self.stop()

    async def handle_control(self, message: Dict[str, Any]) -> None:
        msg_type = message.get("type")

        if msg_type == "auth":
            await self._handle_auth(message)
        elif msg_type == "start":
            await self._handle_start(message)
        elif msg_type == "stop":
            await self.stop()
        else:
            logger.warning(f"Unknown message type: {msg_type}")
            await self.send_error(f"Unknown message type: {msg_type}")

    async def _handle_auth(self, message: Dict[str, Any]) -> None:
        user_id = decode_access_token(message.get("token"), self.settings)
        if user_id is None:
            await self.send_error("Authentication failed")
            self.state = RelayState.STOPPED
            await self._close_client()
            return
        self.user_id = user_id
        if self.state == RelayState.UNAUTHENTICATED:
            self.state = RelayState.AUTHENTICATED
        logger.info(f"Transcription socket authenticated for user {user_id}")
        await self.send_message("auth_success")

    async def _handle_start(self, message: Dict[str, Any]) -> None:
        if self.state == RelayState.UNAUTHENTICATED:
            await self.send_error("Not authenticated")
            return
        if self.state == RelayState.STREAMING:
            await self.send_error("Already streaming")
            return
        if not self.settings.assemblyai_api_key:
            await self.send_error("Transcription service not configured")
            return

        session_id = message.get("sessionId")
        self.config = StreamConfig(
            session_id=session_id if isinstance(session_id, int) else None,
            source_language=message.get("sourceLanguage") or DEFAULT_SOURCE_LANGUAGE,
            target_language=message.get("targetLanguage") or DEFAULT_TARGET_LANGUAGE,
        )

        try:
            self._upstream = await self.connector(self.settings)
        except TRANSPORT_ERRORS as e:
            logger.error(f"Could not connect to transcription provider: {e}")
            await self.send_error("Transcription service error")
            await self.stop()
            return

        self.state = RelayState.STREAMING
        self._pump_task = asyncio.create_task(self._pump_upstream(self._upstream))
        logger.info(
            f"Streaming started (session={self.config.session_id}, "
            f"{self.config.source_language}->{self.config.target_language})"
        )
        await self.send_message("ready")

    # -- provider side -------------------------------------------------

    async def _pump_upstream(self, upstream: Any) -> None:
        try:
            async for raw in upstream:
                await self.handle_provider_message(raw)
        except ConnectionClosedOK:
            pass
        except TRANSPORT_ERRORS as e:
            logger.error(f"Transcription provider connection failed: {e}")
            await self.send_error("Transcription service error")
        logger.info("Transcription provider connection closed")
        if self.state == RelayState.STREAMING:
            await self.stop()

    async def handle_provider_message(self, raw: Any) -> None:
        try:
            result = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Skipping unparseable provider message")
            return
        if not isinstance(result, dict):
            return

        message_type = result.get("message_type")
        if message_type == "FinalTranscript" and result.get("text"):
            await self._forward_final(result)
        elif message_type == "SessionBegins":
            logger.info(f"Provider session started: {result.get('session_id')}")
        elif message_type == "SessionTerminated":
            logger.info("Provider session terminated")
        elif result.get("error"):
            logger.error(f"Provider reported error: {result['error']}")
            await self.send_error(f"Transcription service error: {result['error']}")

    async def _forward_final(self, result: Dict[str, Any]) -> None:
        text = str(result["text"])
        config = self.config or StreamConfig(None, DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE)
        translated = await self.translator.translate(text, config.source_language, config.target_language)
        confidence = result.get("confidence")
        await self.send_message(
            "translation",
            speaker=result.get("speaker") or "A",
            originalText=text,
            translatedText=translated.strip(),
            confidence=confidence if confidence is not None else DEFAULT_CONFIDENCE,
            startTime=result.get("audio_start") or 0,
            endTime=result.get("audio_end") or 0,
        )

    # -- teardown ------------------------------------------------------

    async def stop(self) -> None:
        """Tear down both sockets; safe to call more than once.

        Results already received from the provider are translated and sent
        before ``stopped``.
        """
        if self.state == RelayState.STOPPED:
            return
        self.state = RelayState.STOPPED
        await self._close_upstream(drain=True)
        await self.send_message("stopped")
        await self._close_client()

    async def shutdown(self) -> None:
        self.state = RelayState.STOPPED
        await self._close_upstream()

    async def _close_client(self) -> None:
        if not self._client_open():
            return
        try:
            await self.websocket.close()
        except RuntimeError as e:
            logger.debug(f"Client socket already closed: {e}")

    async def _close_upstream(self, drain: bool = False) -> None:
        upstream, self._upstream = self._upstream, None
        if upstream is not None:
            try:
                await upstream.send(json.dumps({"terminate_session": True}))
            except TRANSPORT_ERRORS:
                logger.debug("Provider socket closed before terminate message")
            try:
                await upstream.close()
            except TRANSPORT_ERRORS as e:
                logger.warning(f"Error closing provider socket: {e}")

        task, self._pump_task = self._pump_task, None
        if task is None or task is asyncio.current_task() or task.done():
            return
        # The pump ends on its own once the provider socket is closed
        if not drain:
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
