import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

import pyotp

from ..ports.totp_store import TotpStore
from ..ports.admin_repo import AdminRepository
from ..ports.password_hasher import PasswordHasher
from ..ports.rate_limiter import RateLimiter
from ..ports.audit_logger import AuditLogger
from ...exceptions import (
    InvalidBackupCode,
    InvalidCodeFormat,
    InvalidTotpCode,
    NotFoundError,
    RateLimitExceeded,
    ValidationError,
)
from ...utils import generate_backup_code, is_six_digit_code, normalize_backup_code, utcnow

logger = logging.getLogger(__name__)

METHOD_TOTP = "totp"
METHOD_BACKUP_CODE = "backup_code"


@dataclass
class TotpEnrollment:
    secret: str
    provisioning_uri: str


@dataclass
class TotpStatus:
    enabled: bool
    pending: bool
    backup_codes_remaining: int


@dataclass
class TotpService:
    """Authenticator-app enrolment for admins.

    UNENROLLED -> SECRET_GENERATED -> ENABLED -> (DISABLED). A freshly
    generated secret sits in `pending_secret`; any enabled secret stays in
    force until `verify_and_enable` confirms the new one. Codes are checked
    with a tolerance of `valid_window` 30-second steps on either side.
    """

    totp_store: TotpStore
    admin_repo: AdminRepository
    hasher: PasswordHasher
    rate_limiter: Optional[RateLimiter] = None
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = field(default=utcnow)
    issuer: str = "fractOWN"
    valid_window: int = 1
    backup_code_count: int = 8
    setup_max_attempts: int = 3
    setup_window_seconds: int = 15 * 60

    def generate_secret(self, admin_id: str) -> TotpEnrollment:
        admin = self.admin_repo.get_by_id(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        if self.rate_limiter and not self.rate_limiter.allow(
            f"totp-setup:{admin_id}", self.setup_max_attempts, self.setup_window_seconds
        ):
            self._audit("generate", admin.username, admin_id, success=False, details={"reason": "rate_limited"})
            raise RateLimitExceeded("Too many TOTP setup attempts. Please wait before trying again.")

        secret = pyotp.random_base32()
        self.totp_store.save_pending(admin_id, secret)
        uri = pyotp.TOTP(secret).provisioning_uri(name=admin.username, issuer_name=self.issuer)
        self._audit("generate", admin.username, admin_id)
        return TotpEnrollment(secret=secret, provisioning_uri=uri)

    def verify_and_enable(self, admin_id: str, code: str) -> List[str]:
        """Confirm the pending secret and return the plaintext backup codes, once."""
        if not is_six_digit_code(code):
            raise InvalidCodeFormat()
        cred = self.totp_store.get(admin_id)
        if cred is None or not cred.pending_secret or not self._matches(cred.pending_secret, code):
            self._audit("verify", admin_id, admin_id, success=False)
            raise InvalidTotpCode()

        codes = self._new_backup_codes()
        hashes = [self.hasher.hash(c) for c in codes]
        if not self.totp_store.activate(admin_id, cred.pending_secret, hashes, self.clock()):
            # Secret regenerated between read and activation
            self._audit("verify", admin_id, admin_id, success=False, details={"reason": "superseded"})
            raise InvalidTotpCode()
        self._audit("verify", admin_id, admin_id)
        return codes

    def verify_for_reset(self, admin_id: str, totp_code: Optional[str] = None,
                         backup_code: Optional[str] = None) -> str:
        """Authorize a credential change by possession of the second factor.

        Exactly one of `totp_code` / `backup_code` must be given. A matched
        backup code is spent in the same call.
        """
        self.check_reset_input(totp_code, backup_code)
        cred = self.totp_store.get(admin_id)
        enabled = cred is not None and cred.enabled and bool(cred.secret)

        if totp_code:
            if not enabled or not self._matches(cred.secret, totp_code):
                self._audit("verify", admin_id, admin_id, success=False, details={"purpose": "reset"})
                raise InvalidTotpCode()
            self._audit("verify", admin_id, admin_id, details={"purpose": "reset"})
            return METHOD_TOTP

        if not enabled or not self._consume_backup_code(admin_id, normalize_backup_code(backup_code)):
            self._audit("backup_used", admin_id, admin_id, success=False)
            raise InvalidBackupCode()
        self._audit("backup_used", admin_id, admin_id)
        return METHOD_BACKUP_CODE

    @staticmethod
    def check_reset_input(totp_code: Optional[str], backup_code: Optional[str]) -> None:
        """Reject malformed reset input before anything about the account is looked up."""
        if bool(totp_code) == bool(backup_code):
            raise ValidationError("Provide either a TOTP code or a backup code")
        if totp_code and not is_six_digit_code(totp_code):
            raise InvalidCodeFormat()
        if backup_code and normalize_backup_code(backup_code) is None:
            raise ValidationError("Backup code must be 8 letters or digits")

    def disable(self, admin_id: str) -> None:
        # TODO: require a fresh TOTP or backup code before disabling
        self.totp_store.clear(admin_id)
        self._audit("disabled", admin_id, admin_id)

    def status(self, admin_id: str) -> TotpStatus:
        cred = self.totp_store.get(admin_id)
        if cred is None:
            return TotpStatus(enabled=False, pending=False, backup_codes_remaining=0)
        remaining = len(self.totp_store.list_unused_backup_codes(admin_id)) if cred.enabled else 0
        return TotpStatus(enabled=cred.enabled, pending=bool(cred.pending_secret), backup_codes_remaining=remaining)

    def is_enabled(self, admin_id: str) -> bool:
        cred = self.totp_store.get(admin_id)
        return cred is not None and cred.enabled

    def _matches(self, secret: str, code: str) -> bool:
        return pyotp.TOTP(secret).verify(code, for_time=self.clock(), valid_window=self.valid_window)

    def _consume_backup_code(self, admin_id: str, code: str) -> bool:
        for row in self.totp_store.list_unused_backup_codes(admin_id):
            if self.hasher.verify(code, row.code_hash):
                # The conditional update decides between concurrent spenders
                return self.totp_store.consume_backup_code(row.id, self.clock())
        return False

    def _new_backup_codes(self) -> List[str]:
        codes: List[str] = []
        while len(codes) < self.backup_code_count:
            code = generate_backup_code()
            if code not in codes:
                codes.append(code)
        return codes

    def _audit(self, action: str, subject: str, admin_id: str, **kwargs) -> None:
        if self.audit:
            self.audit.log(f"totp_{action}", subject, user_id=admin_id, **kwargs)
