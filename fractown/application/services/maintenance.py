import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict

from ..ports.otp_store import OtpStore
from ..ports.session_repo import SessionRepository
from ...utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AuthMaintenance:
    otp_store: OtpStore
    session_repo: SessionRepository
    clock: Callable[[], datetime] = field(default=utcnow)

    def purge_expired(self) -> Dict[str, int]:
        """Delete expired OTP codes and sessions. Returns the number of rows removed per table."""
        now = self.clock()
        removed = {
            "otp_codes": self.otp_store.purge_expired(now),
            "sessions": self.session_repo.purge_expired(now),
        }
        logger.info(f"Purged expired auth records: {removed}")
        return removed
