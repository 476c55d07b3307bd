# fractown/db/models/auth/totp.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class TOTPCredential(SQLModel, table=True):
    __tablename__ = "totp_credentials"
    admin_id: str = Field(foreign_key="admin_users.id", primary_key=True)
    # Active secret; only set once a code derived from it has been confirmed
    secret: Optional[str] = Field(default=None, max_length=64)
    # Secret awaiting confirmation
    pending_secret: Optional[str] = Field(default=None, max_length=64)
    enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    verified_at: Optional[datetime] = Field(default=None)

class TOTPBackupCode(SQLModel, table=True):
    __tablename__ = "totp_backup_codes"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    admin_id: str = Field(foreign_key="admin_users.id", index=True)
    code_hash: str = Field(max_length=128)
    used_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
