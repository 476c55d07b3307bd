import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from ..ports.admin_repo import AdminRepository, AdminDto
from ..ports.password_hasher import PasswordHasher
from ..ports.notification_gateway import NotificationGateway
from ..ports.rate_limiter import RateLimiter
from ..ports.audit_logger import AuditLogger
from ..messages import PASSWORD_CHANGED_SMS
from .session_service import SessionService, IssuedSession, SUBJECT_ADMIN
from .totp_service import TotpService
from ...exceptions import (
    AuthenticationError,
    ConflictError,
    CurrentPasswordIncorrect,
    InvalidCredentials,
    InvalidTotpCode,
    NotFoundError,
    PasswordTooShort,
    RateLimitExceeded,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class AdminAuthService:
    """Username/password login for admins plus account upkeep."""

    admin_repo: AdminRepository
    hasher: PasswordHasher
    sessions: SessionService
    totp: Optional[TotpService] = None
    sms_gateway: Optional[NotificationGateway] = None
    rate_limiter: Optional[RateLimiter] = None
    audit: Optional[AuditLogger] = None
    session_ttl: timedelta = timedelta(hours=12)
    min_password_length: int = 8
    default_country_code: str = "+91"
    login_max_attempts: int = 10
    login_window_seconds: int = 15 * 60
    reset_max_attempts: int = 5
    reset_window_seconds: int = 15 * 60
    _dummy_hash: str = field(default="", init=False, repr=False)

    def __post_init__(self) -> None:
        # Unknown usernames are verified against this hash
        self._dummy_hash = self.hasher.hash("fractown-dummy-password")

    def login(self, username: str, password: str, ip_address: Optional[str] = None) -> IssuedSession:
        key = f"admin-login:{username.lower()}"
        if self.rate_limiter and not self.rate_limiter.allow(key, self.login_max_attempts, self.login_window_seconds):
            self._audit("admin_login", username, success=False, ip_address=ip_address,
                        details={"reason": "rate_limited"})
            raise RateLimitExceeded()

        admin = self.admin_repo.get_by_username(username)
        if admin is None:
            # Keep the unknown-username path as slow as a wrong password
            self.hasher.verify(password, self._dummy_hash)
            self._audit("admin_login", username, success=False, ip_address=ip_address)
            raise InvalidCredentials()
        if not self.hasher.verify(password, admin.password_hash):
            self._audit("admin_login", username, user_id=admin.id, success=False, ip_address=ip_address)
            raise InvalidCredentials()

        if self.rate_limiter:
            self.rate_limiter.reset(key)
        session = self.sessions.issue(SUBJECT_ADMIN, admin.id, self.session_ttl, ip_address=ip_address)
        self._audit("admin_login", username, user_id=admin.id, ip_address=ip_address)
        return session

    def logout(self, token: Optional[str]) -> None:
        self.sessions.revoke(token)

    def change_password(self, admin_id: str, current_password: str, new_password: str,
                        notify_mobile: bool = True) -> None:
        admin = self._require(admin_id)
        if not self.hasher.verify(current_password, admin.password_hash):
            self._audit("admin_password_changed", admin.username, user_id=admin.id, success=False)
            raise CurrentPasswordIncorrect()
        self._check_length(new_password)

        self.admin_repo.update_password(admin.id, self.hasher.hash(new_password))
        self._audit("admin_password_changed", admin.username, user_id=admin.id)
        if notify_mobile and admin.phone_number and self.sms_gateway:
            self.sms_gateway.send_message(self._admin_phone(admin), PASSWORD_CHANGED_SMS)

    def reset_password_with_totp(self, username: str, new_password: str, totp_code: Optional[str] = None,
                                 backup_code: Optional[str] = None) -> str:
        """Set a new password for an admin who proves the second factor.

        Returns the method used ("totp" or "backup_code"). Every admin session
        is revoked afterwards.
        """
        if self.totp is None:
            raise ValidationError("TOTP is not available")
        self._check_length(new_password)
        self.totp.check_reset_input(totp_code, backup_code)
        key = f"totp-reset:{username.lower()}"
        if self.rate_limiter and not self.rate_limiter.allow(key, self.reset_max_attempts, self.reset_window_seconds):
            self._audit("admin_password_reset", username, success=False, details={"reason": "rate_limited"})
            raise RateLimitExceeded()
        admin = self.admin_repo.get_by_username(username)
        try:
            if admin is None or not self.totp.is_enabled(admin.id):
                raise InvalidTotpCode()
            method = self.totp.verify_for_reset(admin.id, totp_code=totp_code, backup_code=backup_code)
        except AuthenticationError:
            self._audit("admin_password_reset", username, user_id=admin.id if admin else None, success=False)
            raise InvalidTotpCode()
        if self.rate_limiter:
            self.rate_limiter.reset(key)

        self.admin_repo.update_password(admin.id, self.hasher.hash(new_password))
        revoked = self.sessions.revoke_all(SUBJECT_ADMIN, admin.id)
        self._audit("admin_password_reset", username, user_id=admin.id,
                    details={"method": method, "sessions_revoked": revoked})
        return method

    def create_admin(self, username: str, email: str, password: str, role: str = "admin") -> AdminDto:
        self._check_length(password)
        if self.admin_repo.get_by_username(username) is not None:
            raise ConflictError("Admin user already exists")
        admin = self.admin_repo.create(username=username, email=email,
                                       password_hash=self.hasher.hash(password), role=role)
        self._audit("admin_created", username, user_id=admin.id)
        return admin

    def get_profile(self, admin_id: str) -> AdminDto:
        return self._require(admin_id)

    def update_profile(self, admin_id: str, email: Optional[str] = None, phone_number: Optional[str] = None,
                       country_code: Optional[str] = None) -> AdminDto:
        updated = self.admin_repo.update_profile(admin_id, email=email, phone_number=phone_number,
                                                 country_code=country_code)
        if updated is None:
            raise NotFoundError("Admin not found")
        return updated

    def ensure_bootstrap_admin(self, username: Optional[str], password: Optional[str],
                               email: Optional[str] = None) -> Optional[AdminDto]:
        if not username or not password:
            return None
        existing = self.admin_repo.get_by_username(username)
        if existing is not None:
            return existing
        try:
            admin = self.create_admin(username, email or f"{username}@fractown.local", password)
        except ConflictError:
            return self.admin_repo.get_by_username(username)
        logger.info("Bootstrap admin created: %s", username)
        return admin

    def _require(self, admin_id: str) -> AdminDto:
        admin = self.admin_repo.get_by_id(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        return admin

    def _admin_phone(self, admin: AdminDto) -> str:
        if admin.phone_number.startswith("+"):
            return admin.phone_number
        return f"{admin.country_code or self.default_country_code}{admin.phone_number}"

    def _check_length(self, password: str) -> None:
        if len(password or "") < self.min_password_length:
            raise PasswordTooShort(f"Password must be at least {self.min_password_length} characters long")

    def _audit(self, action: str, subject: str, **kwargs) -> None:
        if self.audit:
            self.audit.log(action, subject, **kwargs)
