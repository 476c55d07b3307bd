from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class AdminDto:
    id: str
    username: str
    email: str
    password_hash: str
    role: str
    phone_number: Optional[str]
    country_code: Optional[str]
    created_at: datetime


class AdminRepository(Protocol):
    def get_by_username(self, username: str) -> Optional[AdminDto]:
        ...

    def get_by_id(self, admin_id: str) -> Optional[AdminDto]:
        ...

    def create(self, username: str, email: str, password_hash: str, role: str = "admin") -> AdminDto:
        ...

    def update_password(self, admin_id: str, password_hash: str) -> None:
        ...

    def update_profile(self, admin_id: str, email: Optional[str], phone_number: Optional[str],
                       country_code: Optional[str]) -> Optional[AdminDto]:
        ...
