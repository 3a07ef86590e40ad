from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


class TranscriptionSession(SQLModel, table=True):
    __tablename__ = "transcription_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    source_language: str
    target_language: str
    duration: int = Field(default=0)  # seconds
    speaker_count: int = Field(default=1)
    # Aggregates below are recomputed on finalize
    avg_confidence: Optional[float] = None
    low_confidence_word_count: int = Field(default=0)
    total_word_count: int = Field(default=0)
    transcription_completion_time: Optional[int] = None  # ms
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
