# fractown/db/models/admin/admin_user.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class AdminUser(SQLModel, table=True):
    __tablename__ = "admin_users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    username: str = Field(max_length=100, unique=True, index=True)
    email: str = Field(max_length=100, unique=True)
    password_hash: str = Field(max_length=255)
    role: str = Field(default="admin", max_length=20)
    phone_number: Optional[str] = Field(max_length=20, default=None)
    country_code: Optional[str] = Field(max_length=5, default=None)
    created_at: datetime = Field(default_factory=utcnow)
