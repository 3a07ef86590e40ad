from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.quality_log import QualityLog
from app.models.transcription_session import TranscriptionSession
from app.models.utterance import Utterance
from app.repositories.quality_logs import QualityLogsRepository
from app.repositories.sessions import SessionsRepository
from app.repositories.utterances import UtterancesRepository
from app.services.quality import DEFAULT_CONFIDENCE, SessionMetrics, compute_session_metrics

logger = logging.getLogger("app.finalize")

# Spacing used for utterances submitted without timing
DEFAULT_UTTERANCE_SPAN_MS = 5000


@dataclass
class SubmittedUtterance:
    speaker: Optional[str] = None
    text: Optional[str] = None
    original_text: Optional[str] = None
    translated_text: Optional[str] = None
    confidence: Optional[float] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    words: Optional[List[Dict[str, Any]]] = None


def build_utterances(session_id: int, submitted: List[SubmittedUtterance]) -> List[Utterance]:
    rows: List[Utterance] = []
    for i, u in enumerate(submitted):
        text = u.text or ""
        rows.append(
            Utterance(
                session_id=session_id,
                speaker_label=u.speaker or "A",
                original_text=u.original_text or text,
                translated_text=u.translated_text or text,
                confidence=u.confidence if u.confidence is not None else DEFAULT_CONFIDENCE,
                start_time=u.start_time if u.start_time is not None else i * DEFAULT_UTTERANCE_SPAN_MS,
                end_time=u.end_time if u.end_time is not None else (i + 1) * DEFAULT_UTTERANCE_SPAN_MS,
                words=u.words,
            )
        )
    return rows


def finalize_session(
    session: Session,
    record: TranscriptionSession,
    submitted: List[SubmittedUtterance],
    duration: Optional[int] = None,
    translation_completion_time: Optional[int] = None,
) -> SessionMetrics:
    """Replace a session's utterances with the submitted ones and recompute aggregates.

    Everything is written in one transaction; on a database error the
    transaction is rolled back and the error propagates.
    """
    session_id = int(record.id)  # type: ignore[arg-type]
    rows = build_utterances(session_id, submitted)
    metrics = compute_session_metrics(
        speakers=[r.speaker_label for r in rows],
        confidences=[float(r.confidence) for r in rows if r.confidence is not None],
        translated_texts=[r.translated_text for r in rows],
        word_lists=[r.words for r in rows],
    )

    repo_u = UtterancesRepository(session)
    try:
        removed = repo_u.delete_for_session(session_id, commit=False)
        repo_u.add_many(rows, commit=False)

        record.duration = int(duration or 0)
        record.speaker_count = metrics.speaker_count
        record.avg_confidence = metrics.avg_confidence
        record.total_word_count = metrics.total_word_count
        record.low_confidence_word_count = metrics.low_confidence_word_count
        if translation_completion_time is not None:
            record.transcription_completion_time = int(translation_completion_time)
        SessionsRepository(session).update(record, commit=False)

        QualityLogsRepository(session).create(
            QualityLog(
                session_id=session_id,
                avg_confidence=metrics.avg_confidence,
                low_confidence_word_count=metrics.low_confidence_word_count,
                session_duration=record.duration,
                speaker_count=metrics.speaker_count,
                translation_completion_time=translation_completion_time,
            ),
            commit=False,
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    logger.info(
        f"Finalized session {session_id}: {len(rows)} utterances stored "
        f"({removed} replaced), avg confidence {metrics.avg_confidence:.3f}"
    )
    return metrics
