from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete, update
from sqlmodel import select

from .....db.models import TOTPCredential, TOTPBackupCode
from .....application.ports.totp_store import TotpStore, TotpCredentialDto, BackupCodeDto
from .base import SqlRepository


class SqlTotpStore(SqlRepository, TotpStore):
    def _to_dto(self, cred: TOTPCredential) -> TotpCredentialDto:
        return TotpCredentialDto(
            admin_id=cred.admin_id,
            secret=cred.secret,
            pending_secret=cred.pending_secret,
            enabled=cred.enabled,
            created_at=cred.created_at,
            verified_at=cred.verified_at,
        )

    def get(self, admin_id: str) -> Optional[TotpCredentialDto]:
        with self._session() as session:
            cred = session.get(TOTPCredential, admin_id)
            return self._to_dto(cred) if cred else None

    def save_pending(self, admin_id: str, secret: str) -> TotpCredentialDto:
        with self._session() as session:
            cred = session.get(TOTPCredential, admin_id)
            if cred is None:
                cred = TOTPCredential(admin_id=admin_id)
            cred.pending_secret = secret
            session.add(cred)
            session.commit()
            return self._to_dto(cred)

    def activate(self, admin_id: str, secret: str, backup_code_hashes: List[str], now: datetime) -> bool:
        with self._session() as session:
            result = session.exec(
                update(TOTPCredential)
                .where(
                    TOTPCredential.admin_id == admin_id,
                    TOTPCredential.pending_secret == secret,
                )
                .values(secret=secret, pending_secret=None, enabled=True, verified_at=now)
            )
            if result.rowcount == 0:
                session.rollback()
                return False
            session.exec(delete(TOTPBackupCode).where(TOTPBackupCode.admin_id == admin_id))
            for code_hash in backup_code_hashes:
                session.add(TOTPBackupCode(admin_id=admin_id, code_hash=code_hash))
            session.commit()
            return True

    def list_unused_backup_codes(self, admin_id: str) -> List[BackupCodeDto]:
        with self._session() as session:
            rows = session.exec(
                select(TOTPBackupCode).where(
                    TOTPBackupCode.admin_id == admin_id,
                    TOTPBackupCode.used_at == None,  # noqa: E711
                )
            ).all()
            return [BackupCodeDto(id=r.id, admin_id=r.admin_id, code_hash=r.code_hash) for r in rows]

    def consume_backup_code(self, code_id: str, now: datetime) -> bool:
        with self._session() as session:
            result = session.exec(
                update(TOTPBackupCode)
                .where(
                    TOTPBackupCode.id == code_id,
                    TOTPBackupCode.used_at == None,  # noqa: E711
                )
                .values(used_at=now)
            )
            session.commit()
            return result.rowcount > 0

    def clear(self, admin_id: str) -> None:
        with self._session() as session:
            session.exec(delete(TOTPBackupCode).where(TOTPBackupCode.admin_id == admin_id))
            session.exec(delete(TOTPCredential).where(TOTPCredential.admin_id == admin_id))
            session.commit()
