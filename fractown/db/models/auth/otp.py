# fractown/db/models/auth/otp.py
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class OTPCode(SQLModel, table=True):
    __tablename__ = "otp_codes"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    phone_number: str = Field(max_length=20, index=True)
    code: str = Field(max_length=6)
    is_used: bool = Field(default=False)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)
