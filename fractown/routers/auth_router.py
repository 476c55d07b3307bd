import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from ..container import Services
from ..application.services.session_service import Subject
from ..schemas import (
    ERROR_RESPONSES, MessageResponse, SendOTPRequest, UserResponse, VerifyOTPRequest, VerifyOTPResponse,
)
from .deps import USER_COOKIE, client_ip, get_current_user, get_services, get_user_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"], responses=ERROR_RESPONSES)


def _user_response(user) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        phone_number=user.phone_number,
        country_code=user.country_code,
        email=user.email,
        is_verified=user.is_verified,
        is_active=user.is_active,
        created_at=user.created_at,
    )


@router.post("/send-otp", response_model=MessageResponse)
def send_otp(payload: SendOTPRequest, services: Services = Depends(get_services)):
    services.otp_login.request_code(payload.phone_number, email=payload.email)
    return MessageResponse(message="OTP sent successfully")


@router.post("/verify-otp", response_model=VerifyOTPResponse)
def verify_otp(payload: VerifyOTPRequest, request: Request, response: Response,
               services: Services = Depends(get_services)):
    result = services.otp_login.verify_code(
        payload.phone_number,
        payload.otp,
        display_name=payload.name,
        country_code=payload.country_code,
        ip_address=client_ip(request),
    )
    response.set_cookie(
        USER_COOKIE,
        result.session.token,
        httponly=True,
        samesite="lax",
        max_age=int((result.session.expires_at - services.sessions.clock()).total_seconds()),
    )
    return VerifyOTPResponse(
        message="Account created successfully" if result.is_new_user else "Login successful",
        user=_user_response(result.user),
        session_token=result.session.token,
        expires_at=result.session.expires_at,
        is_new_user=result.is_new_user,
    )


@router.get("/user", response_model=UserResponse)
def get_user(current: Subject = Depends(get_current_user), services: Services = Depends(get_services)):
    return _user_response(services.otp_login.get_user(current.subject_id))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, token: Optional[str] = Depends(get_user_token),
           services: Services = Depends(get_services)):
    services.otp_login.logout(token)
    response.delete_cookie(USER_COOKIE)
    return MessageResponse(message="Logged out successfully")
