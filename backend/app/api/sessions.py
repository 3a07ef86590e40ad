from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.api.schemas import CamelModel, SessionDetail, SessionListItem, SessionOut, UtteranceOut
from app.deps import get_current_user_id, get_session
from app.models.transcription_session import TranscriptionSession
from app.models.utterance import Utterance
from app.repositories.sessions import SessionsRepository
from app.repositories.utterances import UtterancesRepository
from app.services.finalization import SubmittedUtterance, finalize_session
from app.services.languages import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE, is_supported
from app.services.quality import confidence_level, confidence_opacity, speaker_color

logger = logging.getLogger("app.api")


router = APIRouter(prefix="/sessions", tags=["sessions"])

PREVIEW_CHARS = 100


class CreateSessionRequest(CamelModel):
    source_language: Optional[str] = None
    target_language: Optional[str] = None


class FinalizeUtterance(CamelModel):
    speaker: Optional[str] = None
    text: Optional[str] = None
    original_text: Optional[str] = None
    translated_text: Optional[str] = None
    confidence: Optional[float] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    words: Optional[List[Dict[str, Any]]] = None


class FinalizeRequest(CamelModel):
    duration: Optional[int] = 0
    utterances: List[FinalizeUtterance] = []
    translation_completion_time: Optional[int] = None


class FinalizeResponse(CamelModel):
    success: bool
    session_id: int


def _utterance_out(utt: Utterance) -> UtteranceOut:
    return UtteranceOut(
        **utt.model_dump(),
        confidence_level=confidence_level(utt.confidence),
        confidence_opacity=confidence_opacity(utt.confidence),
        speaker_color=speaker_color(utt.speaker_label),
    )


def _get_owned_or_404(session: Session, session_id: int, user_id: str) -> TranscriptionSession:
    record = SessionsRepository(session).get_for_user(session_id, user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return record


@router.post("", response_model=SessionOut)
def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> TranscriptionSession:
    source = body.source_language or DEFAULT_SOURCE_LANGUAGE
    target = body.target_language or DEFAULT_TARGET_LANGUAGE
    for code in (source, target):
        if not is_supported(code):
            raise HTTPException(status_code=400, detail=f"Unsupported language: {code}")

    try:
        return SessionsRepository(session).create(
            TranscriptionSession(
                user_id=user_id,
                source_language=source,
                target_language=target,
                duration=0,
                speaker_count=1,
            )
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Create session failed")
        raise HTTPException(status_code=500, detail="Failed to create session")


@router.get("", response_model=List[SessionListItem])
def list_sessions(
    limit: int = 50,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> List[SessionListItem]:
    repo_u = UtterancesRepository(session)
    items: List[SessionListItem] = []
    for record in SessionsRepository(session).list_by_user(user_id, limit=limit, offset=offset):
        first = repo_u.first_for_session(record.id)  # type: ignore[arg-type]
        preview = (first.translated_text or "")[:PREVIEW_CHARS] if first else ""
        items.append(SessionListItem(**record.model_dump(), preview=preview))
    return items


@router.get("/{session_id}", response_model=SessionDetail)
def get_session_detail(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> SessionDetail:
    record = _get_owned_or_404(session, session_id, user_id)
    utterances = UtterancesRepository(session).list_by_session(session_id)
    return SessionDetail(
        **record.model_dump(),
        utterances=[_utterance_out(u) for u in utterances],
    )


@router.post("/{session_id}/finalize", response_model=FinalizeResponse)
def finalize(
    session_id: int,
    body: FinalizeRequest,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> FinalizeResponse:
    record = _get_owned_or_404(session, session_id, user_id)
    submitted = [SubmittedUtterance(**u.model_dump()) for u in body.utterances]
    try:
        finalize_session(
            session,
            record,
            submitted,
            duration=body.duration,
            translation_completion_time=body.translation_completion_time,
        )
    except SQLAlchemyError:
        logger.exception(f"Finalize failed for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to finalize session")
    return FinalizeResponse(success=True, session_id=session_id)
