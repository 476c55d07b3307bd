import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from fractown.application.ports.admin_repo import AdminDto
from fractown.application.ports.otp_store import OneTimeCodeDto
from fractown.application.ports.session_repo import SessionDto
from fractown.application.ports.totp_store import BackupCodeDto, TotpCredentialDto
from fractown.application.ports.user_repo import UserDto
from fractown.application.services.admin_auth_service import AdminAuthService
from fractown.application.services.otp_login_service import OtpLoginService
from fractown.application.services.session_service import SessionService
from fractown.application.services.totp_service import TotpService
from fractown.exceptions import ConflictError
from fractown.infrastructure.notifications.capture_gateway import CaptureGateway
from fractown.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter

START = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeOtpStore:
    def __init__(self):
        self.codes: Dict[str, OneTimeCodeDto] = {}

    def replace(self, phone_number, code, expires_at):
        rec = OneTimeCodeDto(id=str(uuid.uuid4()), phone_number=phone_number, code=code,
                             expires_at=expires_at, used=False, created_at=expires_at)
        self.codes[phone_number] = rec
        return rec

    def is_pending(self, phone_number, code, now):
        rec = self.codes.get(phone_number)
        return rec is not None and rec.code == code and not rec.used and rec.expires_at > now

    def consume(self, phone_number, code, now):
        if not self.is_pending(phone_number, code, now):
            return False
        self.codes[phone_number].used = True
        return True

    def purge_expired(self, now):
        expired = [p for p, rec in self.codes.items() if rec.expires_at <= now]
        for p in expired:
            del self.codes[p]
        return len(expired)


class FakeUserRepo:
    def __init__(self):
        self.users: Dict[str, UserDto] = {}

    def get_by_phone(self, phone_number):
        for u in self.users.values():
            if u.phone_number == phone_number:
                return u
        return None

    def get_by_id(self, user_id):
        return self.users.get(user_id)

    def create(self, name, phone_number, country_code, email=None):
        if self.get_by_phone(phone_number):
            raise ConflictError("User already exists")
        now = START
        user = UserDto(id=str(uuid.uuid4()), name=name, phone_number=phone_number, country_code=country_code,
                       email=email, is_verified=True, is_active=True, created_at=now, updated_at=now)
        self.users[user.id] = user
        return user

    def mark_verified(self, user_id):
        user = self.users.get(user_id)
        if user:
            user.is_verified = True
            user.is_active = True
        return user

    def set_active(self, user_id, active):
        self.users[user_id].is_active = active


class FakeSessionRepo:
    def __init__(self):
        self.sessions: Dict[str, SessionDto] = {}

    def create(self, subject_type, subject_id, token_hash, expires_at, ip_address=None, device_info=None):
        rec = SessionDto(id=str(uuid.uuid4()), subject_type=subject_type, subject_id=subject_id,
                         expires_at=expires_at, created_at=START)
        self.sessions[token_hash] = rec
        return rec

    def get_by_token_hash(self, token_hash):
        return self.sessions.get(token_hash)

    def delete_by_token_hash(self, token_hash):
        self.sessions.pop(token_hash, None)

    def delete_for_subject(self, subject_type, subject_id):
        doomed = [h for h, s in self.sessions.items()
                  if s.subject_type == subject_type and s.subject_id == subject_id]
        for h in doomed:
            del self.sessions[h]
        return len(doomed)

    def purge_expired(self, now):
        doomed = [h for h, s in self.sessions.items() if s.expires_at <= now]
        for h in doomed:
            del self.sessions[h]
        return len(doomed)


class FakeAdminRepo:
    def __init__(self):
        self.admins: Dict[str, AdminDto] = {}

    def get_by_username(self, username):
        for a in self.admins.values():
            if a.username == username:
                return a
        return None

    def get_by_id(self, admin_id):
        return self.admins.get(admin_id)

    def create(self, username, email, password_hash, role="admin"):
        if self.get_by_username(username):
            raise ConflictError("Admin user already exists")
        admin = AdminDto(id=str(uuid.uuid4()), username=username, email=email, password_hash=password_hash,
                         role=role, phone_number=None, country_code=None, created_at=START)
        self.admins[admin.id] = admin
        return admin

    def update_password(self, admin_id, password_hash):
        self.admins[admin_id].password_hash = password_hash

    def update_profile(self, admin_id, email, phone_number, country_code):
        admin = self.admins.get(admin_id)
        if admin is None:
            return None
        if email is not None:
            admin.email = email
        if phone_number is not None:
            admin.phone_number = phone_number
        if country_code is not None:
            admin.country_code = country_code
        return admin


class FakeTotpStore:
    def __init__(self):
        self.creds: Dict[str, TotpCredentialDto] = {}
        self.backup_codes: Dict[str, List[dict]] = {}

    def get(self, admin_id):
        return self.creds.get(admin_id)

    def save_pending(self, admin_id, secret):
        cred = self.creds.get(admin_id)
        if cred is None:
            cred = TotpCredentialDto(admin_id=admin_id, secret=None, pending_secret=None, enabled=False,
                                     created_at=START, verified_at=None)
            self.creds[admin_id] = cred
        cred.pending_secret = secret
        return cred

    def activate(self, admin_id, secret, backup_code_hashes, now):
        cred = self.creds.get(admin_id)
        if cred is None or cred.pending_secret != secret:
            return False
        cred.secret = secret
        cred.pending_secret = None
        cred.enabled = True
        cred.verified_at = now
        self.backup_codes[admin_id] = [
            {"id": str(uuid.uuid4()), "hash": h, "used_at": None} for h in backup_code_hashes
        ]
        return True

    def list_unused_backup_codes(self, admin_id):
        return [BackupCodeDto(id=row["id"], admin_id=admin_id, code_hash=row["hash"])
                for row in self.backup_codes.get(admin_id, []) if row["used_at"] is None]

    def consume_backup_code(self, code_id, now):
        for rows in self.backup_codes.values():
            for row in rows:
                if row["id"] == code_id and row["used_at"] is None:
                    row["used_at"] = now
                    return True
        return False

    def clear(self, admin_id):
        self.creds.pop(admin_id, None)
        self.backup_codes.pop(admin_id, None)


class FakeHasher:
    def hash(self, secret: str) -> str:
        return f"hashed:{secret}"

    def verify(self, secret: str, hashed: str) -> bool:
        return hashed == f"hashed:{secret}"


class RecordingAudit:
    def __init__(self):
        self.events: List[dict] = []

    def log(self, action, subject, user_id=None, request_id=None, ip_address=None, success=True, details=None):
        self.events.append({"action": action, "subject": subject, "user_id": user_id,
                            "success": success, "details": details or {}})

    def actions(self, success: Optional[bool] = None) -> List[str]:
        return [e["action"] for e in self.events if success is None or e["success"] == success]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp_store():
    return FakeOtpStore()


@pytest.fixture
def user_repo():
    return FakeUserRepo()


@pytest.fixture
def session_repo():
    return FakeSessionRepo()


@pytest.fixture
def admin_repo():
    return FakeAdminRepo()


@pytest.fixture
def totp_store():
    return FakeTotpStore()


@pytest.fixture
def hasher():
    return FakeHasher()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def sms():
    return CaptureGateway()


@pytest.fixture
def email():
    return CaptureGateway()


@pytest.fixture
def rate_limiter(clock):
    return InMemoryRateLimiter(clock=lambda: clock().timestamp())


@pytest.fixture
def sessions(session_repo, user_repo, admin_repo, clock):
    return SessionService(session_repo=session_repo, user_repo=user_repo, admin_repo=admin_repo, clock=clock)


@pytest.fixture
def otp_login(otp_store, user_repo, sessions, sms, email, rate_limiter, audit, clock):
    return OtpLoginService(otp_store=otp_store, user_repo=user_repo, sessions=sessions, sms_gateway=sms,
                           email_gateway=email, rate_limiter=rate_limiter, audit=audit, clock=clock)


@pytest.fixture
def totp(totp_store, admin_repo, hasher, rate_limiter, audit, clock):
    return TotpService(totp_store=totp_store, admin_repo=admin_repo, hasher=hasher, rate_limiter=rate_limiter,
                       audit=audit, clock=clock)


@pytest.fixture
def admin_auth(admin_repo, hasher, sessions, totp, sms, rate_limiter, audit):
    return AdminAuthService(admin_repo=admin_repo, hasher=hasher, sessions=sessions, totp=totp, sms_gateway=sms,
                            rate_limiter=rate_limiter, audit=audit)


@pytest.fixture
def admin(admin_auth):
    return admin_auth.create_admin("admin1", "admin1@fractown.com", "correct-horse")
