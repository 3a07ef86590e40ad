from __future__ import annotations

from typing import Iterable, Optional
from sqlmodel import Session, select

from app.models.utterance import Utterance


class UtterancesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_many(self, utterances: Iterable[Utterance], commit: bool = True) -> None:
        for utt in utterances:
            self.session.add(utt)
        if commit:
            self.session.commit()

    def delete_for_session(self, session_id: int, commit: bool = True) -> int:
        """Delete all utterances of a session and return how many were removed."""
        to_delete = self.list_by_session(session_id)
        for utt in to_delete:
            self.session.delete(utt)
        if commit:
            self.session.commit()
        return len(to_delete)

    def list_by_session(self, session_id: int) -> list[Utterance]:
        statement = select(Utterance).where(Utterance.session_id == session_id).order_by(
            Utterance.start_time.asc(), Utterance.id.asc()
        )
        return list(self.session.exec(statement))

    def first_for_session(self, session_id: int) -> Optional[Utterance]:
        statement = (
            select(Utterance)
            .where(Utterance.session_id == session_id)
            .order_by(Utterance.start_time.asc(), Utterance.id.asc())
            .limit(1)
        )
        return self.session.exec(statement).first()
