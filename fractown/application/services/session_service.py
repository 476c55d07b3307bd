from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..ports.session_repo import SessionRepository
from ..ports.user_repo import UserRepository
from ..ports.admin_repo import AdminRepository
from ...exceptions import SessionInvalid
from ...utils import generate_session_token, hash_token, utcnow

SUBJECT_USER = "user"
SUBJECT_ADMIN = "admin"


@dataclass
class IssuedSession:
    token: str
    subject_type: str
    subject_id: str
    expires_at: datetime


@dataclass
class Subject:
    subject_type: str
    subject_id: str


@dataclass
class SessionService:
    """Opaque bearer sessions with a lifetime fixed at issuance.

    Only the SHA-256 of a token is persisted, so a token is handed out exactly
    once by `issue`. `validate` raises the same `SessionInvalid` for unknown,
    expired, revoked and inactive-subject tokens.
    """

    session_repo: SessionRepository
    user_repo: UserRepository
    admin_repo: Optional[AdminRepository] = None
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(self, subject_type: str, subject_id: str, ttl: timedelta,
              ip_address: Optional[str] = None, device_info: Optional[str] = None) -> IssuedSession:
        token = generate_session_token()
        expires_at = self.clock() + ttl
        self.session_repo.create(
            subject_type=subject_type,
            subject_id=subject_id,
            token_hash=hash_token(token),
            expires_at=expires_at,
            ip_address=ip_address,
            device_info=device_info,
        )
        return IssuedSession(token=token, subject_type=subject_type, subject_id=subject_id, expires_at=expires_at)

    def validate(self, token: Optional[str]) -> Subject:
        if not token:
            raise SessionInvalid()
        rec = self.session_repo.get_by_token_hash(hash_token(token))
        if rec is None or rec.expires_at <= self.clock():
            raise SessionInvalid()
        if rec.subject_type == SUBJECT_USER:
            user = self.user_repo.get_by_id(rec.subject_id)
            if user is None or not user.is_active:
                raise SessionInvalid()
        elif rec.subject_type == SUBJECT_ADMIN:
            if self.admin_repo is None or self.admin_repo.get_by_id(rec.subject_id) is None:
                raise SessionInvalid()
        else:
            raise SessionInvalid()
        return Subject(subject_type=rec.subject_type, subject_id=rec.subject_id)

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        self.session_repo.delete_by_token_hash(hash_token(token))

    def revoke_all(self, subject_type: str, subject_id: str) -> int:
        return self.session_repo.delete_for_subject(subject_type, subject_id)
