from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass
class OneTimeCodeDto:
    id: str
    phone_number: str
    code: str
    expires_at: datetime
    used: bool
    created_at: datetime


class OtpStore(Protocol):
    def replace(self, phone_number: str, code: str, expires_at: datetime) -> OneTimeCodeDto:
        """Delete every code for the phone and insert the new one, atomically."""
        ...

    def is_pending(self, phone_number: str, code: str, now: datetime) -> bool:
        ...

    def consume(self, phone_number: str, code: str, now: datetime) -> bool:
        """Mark a matching unused, unexpired code used. True iff this call did it."""
        ...

    def purge_expired(self, now: datetime) -> int:
        ...
