from datetime import datetime
from typing import Optional
from sqlalchemy import delete
from sqlmodel import select

from .....db.models import AuthSession
from .....application.ports.session_repo import SessionRepository, SessionDto
from .base import SqlRepository


class SqlSessionRepository(SqlRepository, SessionRepository):
    def _to_dto(self, rec: AuthSession) -> SessionDto:
        return SessionDto(
            id=rec.id,
            subject_type=rec.subject_type,
            subject_id=rec.subject_id,
            expires_at=rec.expires_at,
            created_at=rec.created_at,
        )

    def create(self, subject_type: str, subject_id: str, token_hash: str, expires_at: datetime,
               ip_address: Optional[str] = None, device_info: Optional[str] = None) -> SessionDto:
        rec = AuthSession(
            subject_type=subject_type,
            subject_id=subject_id,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            device_info=device_info,
        )
        with self._session() as session:
            session.add(rec)
            session.commit()
            return self._to_dto(rec)

    def get_by_token_hash(self, token_hash: str) -> Optional[SessionDto]:
        with self._session() as session:
            rec = session.exec(select(AuthSession).where(AuthSession.token_hash == token_hash)).first()
            return self._to_dto(rec) if rec else None

    def delete_by_token_hash(self, token_hash: str) -> None:
        with self._session() as session:
            session.exec(delete(AuthSession).where(AuthSession.token_hash == token_hash))
            session.commit()

    def delete_for_subject(self, subject_type: str, subject_id: str) -> int:
        with self._session() as session:
            result = session.exec(
                delete(AuthSession).where(
                    AuthSession.subject_type == subject_type,
                    AuthSession.subject_id == subject_id,
                )
            )
            session.commit()
            return result.rowcount

    def purge_expired(self, now: datetime) -> int:
        with self._session() as session:
            result = session.exec(delete(AuthSession).where(AuthSession.expires_at <= now))
            session.commit()
            return result.rowcount
