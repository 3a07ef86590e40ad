from __future__ import annotations

from typing import Optional
from sqlmodel import Session, select

from app.models.transcription_session import TranscriptionSession


class SessionsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, record: TranscriptionSession) -> TranscriptionSession:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get(self, session_id: int) -> Optional[TranscriptionSession]:
        return self.session.get(TranscriptionSession, session_id)

    def get_for_user(self, session_id: int, user_id: str) -> Optional[TranscriptionSession]:
        record = self.get(session_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def list_by_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[TranscriptionSession]:
        statement = (
            select(TranscriptionSession)
            .where(TranscriptionSession.user_id == user_id)
            .order_by(TranscriptionSession.created_at.desc(), TranscriptionSession.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.exec(statement))

    def update(self, record: TranscriptionSession, commit: bool = True) -> TranscriptionSession:
        self.session.add(record)
        if commit:
            self.session.commit()
            self.session.refresh(record)
        return record
