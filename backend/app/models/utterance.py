from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlmodel import SQLModel, Field, Column, JSON


class Utterance(SQLModel, table=True):
    __tablename__ = "utterances"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(index=True, foreign_key="transcription_sessions.id")
    speaker_label: str  # "A", "B", ...
    original_text: str
    translated_text: str
    start_time: Optional[int] = Field(default=None, index=True)  # ms
    end_time: Optional[int] = None  # ms
    confidence: Optional[float] = None
    words: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
