# fractown/db/models/users/session.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class AuthSession(SQLModel, table=True):
    __tablename__ = "auth_sessions"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    subject_type: str = Field(max_length=10, index=True)
    subject_id: str = Field(max_length=36, index=True)
    # SHA-256 of the bearer token; the token itself is never stored
    token_hash: str = Field(max_length=64, unique=True, index=True)
    device_info: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(max_length=45, default=None)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)
