"""WebSocket endpoint relaying client audio to the transcription provider."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from app.services.relay import TranscriptionRelay

logger = logging.getLogger("app.api.transcribe")


router = APIRouter()


@router.websocket("/ws/transcribe")
async def transcribe_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    logger.info("Client connected to transcription socket")
    state = websocket.app.state
    relay = TranscriptionRelay(
        websocket,
        settings=state.settings,
        translator=state.translator,
        connector=state.upstream_connector,
    )
    await relay.run()
