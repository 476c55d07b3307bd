from datetime import datetime
from sqlalchemy import delete, update
from sqlmodel import select

from .....db.models import OTPCode
from .....application.ports.otp_store import OtpStore, OneTimeCodeDto
from .base import SqlRepository


class SqlOtpStore(SqlRepository, OtpStore):
    def _to_dto(self, rec: OTPCode) -> OneTimeCodeDto:
        return OneTimeCodeDto(
            id=rec.id,
            phone_number=rec.phone_number,
            code=rec.code,
            expires_at=rec.expires_at,
            used=rec.is_used,
            created_at=rec.created_at,
        )

    def replace(self, phone_number: str, code: str, expires_at: datetime) -> OneTimeCodeDto:
        with self._session() as session:
            session.exec(delete(OTPCode).where(OTPCode.phone_number == phone_number))
            rec = OTPCode(phone_number=phone_number, code=code, expires_at=expires_at)
            session.add(rec)
            session.commit()
            return self._to_dto(rec)

    def is_pending(self, phone_number: str, code: str, now: datetime) -> bool:
        with self._session() as session:
            rec = session.exec(
                select(OTPCode).where(
                    OTPCode.phone_number == phone_number,
                    OTPCode.code == code,
                    OTPCode.is_used == False,  # noqa: E712
                    OTPCode.expires_at > now,
                )
            ).first()
            return rec is not None

    def consume(self, phone_number: str, code: str, now: datetime) -> bool:
        with self._session() as session:
            result = session.exec(
                update(OTPCode)
                .where(
                    OTPCode.phone_number == phone_number,
                    OTPCode.code == code,
                    OTPCode.is_used == False,  # noqa: E712
                    OTPCode.expires_at > now,
                )
                .values(is_used=True)
            )
            session.commit()
            return result.rowcount > 0

    def purge_expired(self, now: datetime) -> int:
        with self._session() as session:
            result = session.exec(delete(OTPCode).where(OTPCode.expires_at <= now))
            session.commit()
            return result.rowcount
