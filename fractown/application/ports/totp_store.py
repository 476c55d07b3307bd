from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol


@dataclass
class TotpCredentialDto:
    admin_id: str
    secret: Optional[str]
    pending_secret: Optional[str]
    enabled: bool
    created_at: datetime
    verified_at: Optional[datetime]


@dataclass
class BackupCodeDto:
    id: str
    admin_id: str
    code_hash: str


class TotpStore(Protocol):
    def get(self, admin_id: str) -> Optional[TotpCredentialDto]:
        ...

    def save_pending(self, admin_id: str, secret: str) -> TotpCredentialDto:
        ...

    def activate(self, admin_id: str, secret: str, backup_code_hashes: List[str], now: datetime) -> bool:
        """Promote `secret` from pending to active and replace the backup codes.

        Returns False when the pending secret changed underneath the caller.
        """
        ...

    def list_unused_backup_codes(self, admin_id: str) -> List[BackupCodeDto]:
        ...

    def consume_backup_code(self, code_id: str, now: datetime) -> bool:
        ...

    def clear(self, admin_id: str) -> None:
        ...
