from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class SessionDto:
    id: str
    subject_type: str
    subject_id: str
    expires_at: datetime
    created_at: datetime


class SessionRepository(Protocol):
    def create(self, subject_type: str, subject_id: str, token_hash: str, expires_at: datetime,
               ip_address: Optional[str] = None, device_info: Optional[str] = None) -> SessionDto:
        ...

    def get_by_token_hash(self, token_hash: str) -> Optional[SessionDto]:
        ...

    def delete_by_token_hash(self, token_hash: str) -> None:
        ...

    def delete_for_subject(self, subject_type: str, subject_id: str) -> int:
        ...

    def purge_expired(self, now: datetime) -> int:
        ...
