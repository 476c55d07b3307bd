from typing import Protocol, Optional
from datetime import datetime

class UserDto:
    def __init__(self, id: str, name: str, phone_number: str, country_code: str,
                 email: Optional[str], is_verified: bool, is_active: bool,
                 created_at: datetime, updated_at: datetime):
        self.id = id
        self.name = name
        self.phone_number = phone_number
        self.country_code = country_code
        self.email = email
        self.is_verified = is_verified
        self.is_active = is_active
        self.created_at = created_at
        self.updated_at = updated_at

class UserRepository(Protocol):
    def get_by_phone(self, phone_number: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, name: str, phone_number: str, country_code: str, email: Optional[str] = None) -> UserDto:
        """Create a verified, active user."""
        ...

    def mark_verified(self, user_id: str) -> Optional[UserDto]:
        """Flip is_verified and is_active on."""
        ...

    def set_active(self, user_id: str, active: bool) -> None:
        ...
