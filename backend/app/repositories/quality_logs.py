from __future__ import annotations

from sqlmodel import Session, select

from app.models.quality_log import QualityLog


class QualityLogsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, log: QualityLog, commit: bool = True) -> QualityLog:
        self.session.add(log)
        if commit:
            self.session.commit()
            self.session.refresh(log)
        return log

    def list_by_session(self, session_id: int) -> list[QualityLog]:
        statement = select(QualityLog).where(QualityLog.session_id == session_id).order_by(QualityLog.id.asc())
        return list(self.session.exec(statement))
