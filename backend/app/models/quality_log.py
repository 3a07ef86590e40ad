"""Per-finalize snapshot of session quality metrics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


class QualityLog(SQLModel, table=True):
    __tablename__ = "quality_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(index=True, foreign_key="transcription_sessions.id")
    avg_confidence: Optional[float] = None
    low_confidence_word_count: Optional[int] = None
    session_duration: Optional[int] = None  # seconds
    speaker_count: Optional[int] = None
    translation_completion_time: Optional[int] = None  # ms
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
