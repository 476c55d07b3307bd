import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..ports.otp_store import OtpStore
from ..ports.user_repo import UserRepository, UserDto
from ..ports.notification_gateway import NotificationGateway
from ..ports.rate_limiter import RateLimiter
from ..ports.audit_logger import AuditLogger
from ..messages import WELCOME_SMS
from .session_service import SessionService, IssuedSession, SUBJECT_USER
from ...exceptions import (
    ConflictError,
    InvalidCodeFormat,
    InvalidOrExpiredCode,
    NameRequiredForNewUser,
    RateLimitExceeded,
    SessionInvalid,
)
from ...utils import extract_country_code, generate_otp, is_six_digit_code, utcnow

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    user: UserDto
    session: IssuedSession
    is_new_user: bool


@dataclass
class OtpLoginService:
    """Phone-number login with one-time codes.

    A phone has at most one pending code: `request_code` replaces whatever was
    there. `verify_code` consumes the code atomically, so a replayed or
    superseded code fails with `InvalidOrExpiredCode` exactly like an expired
    one.
    """

    otp_store: OtpStore
    user_repo: UserRepository
    sessions: SessionService
    sms_gateway: NotificationGateway
    email_gateway: Optional[NotificationGateway] = None
    rate_limiter: Optional[RateLimiter] = None
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = field(default=utcnow)
    code_ttl: timedelta = timedelta(minutes=5)
    session_ttl: timedelta = timedelta(hours=24)
    rate_limit_max_requests: int = 5
    rate_limit_window_seconds: int = 15 * 60
    verify_max_attempts: int = 5
    verify_window_seconds: int = 15 * 60
    default_country_code: str = "+91"

    def request_code(self, phone_number: str, email: Optional[str] = None) -> None:
        if self.rate_limiter and not self.rate_limiter.allow(
            f"otp:{phone_number}", self.rate_limit_max_requests, self.rate_limit_window_seconds
        ):
            logger.warning("OTP rate limit exceeded")
            self._audit("otp_requested", phone_number, success=False, details={"reason": "rate_limited"})
            raise RateLimitExceeded()

        code = generate_otp()
        # Storage errors propagate as TransientError; delivery failures never do
        self.otp_store.replace(phone_number, code, self.clock() + self.code_ttl)

        self.sms_gateway.send_code(phone_number, code)
        if email and self.email_gateway:
            self.email_gateway.send_code(email, code)
        self._audit("otp_requested", phone_number, details={"email": bool(email)})

    def verify_code(self, phone_number: str, code: str, display_name: Optional[str] = None,
                    country_code: Optional[str] = None, ip_address: Optional[str] = None) -> LoginResult:
        if not is_six_digit_code(code):
            raise InvalidCodeFormat()
        verify_key = f"otp-verify:{phone_number}"
        if self.rate_limiter and not self.rate_limiter.allow(
            verify_key, self.verify_max_attempts, self.verify_window_seconds
        ):
            logger.warning("OTP verification attempts exceeded")
            self._audit("otp_verified", phone_number, success=False, details={"reason": "rate_limited"})
            raise RateLimitExceeded()
        now = self.clock()
        display_name = display_name.strip() if display_name else None

        user = self.user_repo.get_by_phone(phone_number)
        if user is None and not display_name:
            # Only disclose the missing-name requirement to a holder of a live code,
            # and leave that code pending so the client can resubmit with a name.
            if not self.otp_store.is_pending(phone_number, code, now):
                self._audit("otp_verified", phone_number, success=False)
                raise InvalidOrExpiredCode()
            raise NameRequiredForNewUser()

        if not self.otp_store.consume(phone_number, code, now):
            self._audit("otp_verified", phone_number, success=False)
            raise InvalidOrExpiredCode()
        if self.rate_limiter:
            self.rate_limiter.reset(verify_key)

        is_new_user = False
        if user is None:
            try:
                user = self.user_repo.create(
                    name=display_name,
                    phone_number=phone_number,
                    country_code=country_code or extract_country_code(phone_number, self.default_country_code),
                )
                is_new_user = True
            except ConflictError:
                # Created concurrently by another verified request for the same phone
                user = self.user_repo.get_by_phone(phone_number)
        if not is_new_user:
            user = self.user_repo.mark_verified(user.id) or user

        if is_new_user:
            self.sms_gateway.send_message(phone_number, WELCOME_SMS.format(name=user.name))

        session = self.sessions.issue(SUBJECT_USER, user.id, self.session_ttl, ip_address=ip_address)
        self._audit("otp_verified", phone_number, user_id=user.id, details={"new_user": is_new_user})
        return LoginResult(user=user, session=session, is_new_user=is_new_user)

    def get_user(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise SessionInvalid()
        return user

    def logout(self, token: Optional[str]) -> None:
        self.sessions.revoke(token)

    def _audit(self, action: str, phone_number: str, **kwargs) -> None:
        if self.audit:
            self.audit.log(action, phone_number, **kwargs)
