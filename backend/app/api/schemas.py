"""Request/response bodies shared by the REST routers.

The mobile client speaks camelCase JSON; attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserOut(CamelModel):
    id: str
    email: str
    name: str


class AuthResponse(CamelModel):
    token: str
    user: UserOut


class SessionOut(CamelModel):
    id: int
    user_id: str
    source_language: str
    target_language: str
    duration: int = 0
    speaker_count: int = 1
    avg_confidence: Optional[float] = None
    low_confidence_word_count: int = 0
    total_word_count: int = 0
    transcription_completion_time: Optional[int] = None
    created_at: datetime


class SessionListItem(SessionOut):
    preview: str = ""


class UtteranceOut(CamelModel):
    id: int
    session_id: int
    speaker_label: str
    original_text: str
    translated_text: str
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    confidence: Optional[float] = None
    words: Optional[List[Dict[str, Any]]] = None
    created_at: datetime
    # Display hints
    confidence_level: str
    confidence_opacity: float
    speaker_color: str


class SessionDetail(SessionOut):
    utterances: List[UtteranceOut] = []
