# fractown/schemas/admin/admin.py
from pydantic import BaseModel, ConfigDict, Field, validator
from typing import List, Optional
from datetime import datetime
import re


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminLoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    session_token: str = Field(..., alias="sessionToken")
    expires_at: datetime = Field(..., alias="expiresAt")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword")
    notify_mobile: bool = Field(True, alias="notifyMobile")


class AdminProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: str
    role: str
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    country_code: Optional[str] = Field(None, alias="countryCode")
    created_at: datetime = Field(..., alias="createdAt")


class UpdateAdminProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    country_code: Optional[str] = Field(None, alias="countryCode")

    @validator('email')
    def validate_email(cls, v):
        if v is not None and not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v):
            raise ValueError('Invalid email address')
        return v

    @validator('phone_number')
    def validate_phone(cls, v):
        if v is not None:
            phone_clean = re.sub(r'[^\d+]', '', v)
            if not re.match(r'^\+?\d{6,18}$', phone_clean):
                raise ValueError('Invalid phone number format')
            return phone_clean
        return v


class CreateAdminRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str
    password: str

    @validator('username')
    def validate_username(cls, v):
        if not re.match(r'^[A-Za-z0-9_.\-]+$', v):
            raise ValueError('Username can only contain letters, digits, dots, dashes and underscores')
        return v

    @validator('email')
    def validate_email(cls, v):
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v):
            raise ValueError('Invalid email address')
        return v


class TotpGenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    secret: str
    otpauth_url: str = Field(..., alias="otpauthUrl")


class TotpVerifyRequest(BaseModel):
    # Older clients post the code as "token"
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., alias="token")

    @validator('code')
    def strip_code(cls, v):
        return v.strip()


class TotpVerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    backup_codes: List[str] = Field(..., alias="backupCodes")


class TotpStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    pending: bool
    backup_codes_remaining: int = Field(..., alias="backupCodesRemaining")


class ForgotPasswordTotpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword")
    totp_code: Optional[str] = Field(None, alias="totpCode")
    backup_code: Optional[str] = Field(None, alias="backupCode")

    @validator('username')
    def strip_username(cls, v):
        return v.strip()

    @validator('totp_code', 'backup_code')
    def blank_to_none(cls, v):
        if v is None or v.strip() == "":
            return None
        return v.strip()
