# fractown/schemas/auth/auth.py
from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional
from datetime import datetime
import re

PHONE_PATTERN = r'^\+\d{1,4}\d{6,14}$'


def clean_phone(v: str) -> str:
    phone_clean = re.sub(r'[^\d+]', '', v)
    if not re.match(PHONE_PATTERN, phone_clean):
        raise ValueError('Invalid phone number format. Must include country code (e.g., +911234567890)')
    return phone_clean


class SendOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber", description="Phone number with country code")
    email: Optional[str] = Field(None, description="Optional email that also receives the code")

    @validator('phone_number')
    def validate_phone(cls, v):
        return clean_phone(v)

    @validator('email')
    def validate_email(cls, v):
        if v is None or v.strip() == "":
            return None
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v.strip()):
            raise ValueError('Invalid email address')
        return v.strip()


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber", description="Phone number with country code")
    otp: str = Field(..., description="6-digit code received by SMS")
    name: Optional[str] = Field(None, max_length=100, description="Display name, required for first login")
    country_code: Optional[str] = Field(None, alias="countryCode", description="E.g. +91")

    @validator('phone_number')
    def validate_phone(cls, v):
        return clean_phone(v)

    @validator('otp')
    def strip_otp(cls, v):
        return v.strip()

    @validator('country_code')
    def validate_country_code(cls, v):
        if v is None or v.strip() == "":
            return None
        v = v.strip()
        if not re.match(r'^\+\d{1,4}$', v):
            raise ValueError('Invalid country code')
        return v


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    phone_number: str = Field(..., alias="phoneNumber")
    country_code: str = Field(..., alias="countryCode")
    email: Optional[str] = None
    is_verified: bool = Field(..., alias="isVerified")
    is_active: bool = Field(..., alias="isActive")
    created_at: datetime = Field(..., alias="createdAt")


class VerifyOTPResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    user: UserResponse
    session_token: str = Field(..., alias="sessionToken")
    expires_at: datetime = Field(..., alias="expiresAt")
    is_new_user: bool = Field(..., alias="isNewUser")
