import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from ..container import Services
from ..application.services.session_service import Subject
from ..schemas import (
    ERROR_RESPONSES, AdminLoginRequest, AdminLoginResponse, AdminProfileResponse, ChangePasswordRequest, CreateAdminRequest,
    ForgotPasswordTotpRequest, MessageResponse, TotpGenerateResponse, TotpStatusResponse, TotpVerifyRequest,
    TotpVerifyResponse, UpdateAdminProfileRequest,
)
from .deps import ADMIN_COOKIE, client_ip, get_admin_token, get_current_admin, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"], responses=ERROR_RESPONSES)


def _profile_response(admin) -> AdminProfileResponse:
    return AdminProfileResponse(
        id=admin.id,
        username=admin.username,
        email=admin.email,
        role=admin.role,
        phone_number=admin.phone_number,
        country_code=admin.country_code,
        created_at=admin.created_at,
    )


@router.post("/login", response_model=AdminLoginResponse)
def admin_login(payload: AdminLoginRequest, request: Request, response: Response,
                services: Services = Depends(get_services)):
    session = services.admin_auth.login(payload.username, payload.password, ip_address=client_ip(request))
    response.set_cookie(
        ADMIN_COOKIE,
        session.token,
        httponly=True,
        samesite="strict",
        max_age=int((session.expires_at - services.sessions.clock()).total_seconds()),
    )
    return AdminLoginResponse(message="Login successful", session_token=session.token,
                              expires_at=session.expires_at)


@router.post("/logout", response_model=MessageResponse)
def admin_logout(response: Response, token: Optional[str] = Depends(get_admin_token),
                 services: Services = Depends(get_services)):
    services.admin_auth.logout(token)
    response.delete_cookie(ADMIN_COOKIE)
    return MessageResponse(message="Logged out successfully")


@router.post("/change-password")
def change_password(payload: ChangePasswordRequest, current: Subject = Depends(get_current_admin),
                    services: Services = Depends(get_services)):
    services.admin_auth.change_password(
        current.subject_id,
        payload.current_password,
        payload.new_password,
        notify_mobile=payload.notify_mobile,
    )
    return {"success": True, "message": "Password changed successfully", "notificationSent": payload.notify_mobile}


@router.get("/profile", response_model=AdminProfileResponse)
def get_profile(current: Subject = Depends(get_current_admin), services: Services = Depends(get_services)):
    return _profile_response(services.admin_auth.get_profile(current.subject_id))


@router.put("/profile", response_model=AdminProfileResponse)
def update_profile(payload: UpdateAdminProfileRequest, current: Subject = Depends(get_current_admin),
                   services: Services = Depends(get_services)):
    admin = services.admin_auth.update_profile(
        current.subject_id,
        email=payload.email,
        phone_number=payload.phone_number,
        country_code=payload.country_code,
    )
    return _profile_response(admin)


@router.post("/users", response_model=AdminProfileResponse, status_code=201)
def create_admin(payload: CreateAdminRequest, current: Subject = Depends(get_current_admin),
                 services: Services = Depends(get_services)):
    admin = services.admin_auth.create_admin(payload.username, payload.email, payload.password)
    logger.info(f"Admin {current.subject_id} created admin {admin.id}")
    return _profile_response(admin)


@router.post("/totp/generate", response_model=TotpGenerateResponse)
def totp_generate(current: Subject = Depends(get_current_admin), services: Services = Depends(get_services)):
    enrollment = services.totp.generate_secret(current.subject_id)
    return TotpGenerateResponse(secret=enrollment.secret, otpauth_url=enrollment.provisioning_uri)


@router.post("/totp/verify", response_model=TotpVerifyResponse)
def totp_verify(payload: TotpVerifyRequest, current: Subject = Depends(get_current_admin),
                services: Services = Depends(get_services)):
    codes = services.totp.verify_and_enable(current.subject_id, payload.code)
    return TotpVerifyResponse(message="TOTP authentication enabled successfully", backup_codes=codes)


@router.get("/totp/status", response_model=TotpStatusResponse)
def totp_status(current: Subject = Depends(get_current_admin), services: Services = Depends(get_services)):
    status = services.totp.status(current.subject_id)
    return TotpStatusResponse(enabled=status.enabled, pending=status.pending,
                              backup_codes_remaining=status.backup_codes_remaining)


@router.post("/totp/disable", response_model=MessageResponse)
def totp_disable(current: Subject = Depends(get_current_admin), services: Services = Depends(get_services)):
    services.totp.disable(current.subject_id)
    return MessageResponse(message="TOTP authentication disabled")


@router.post("/forgot-password-totp")
def forgot_password_totp(payload: ForgotPasswordTotpRequest, services: Services = Depends(get_services)):
    method = services.admin_auth.reset_password_with_totp(
        payload.username,
        payload.new_password,
        totp_code=payload.totp_code,
        backup_code=payload.backup_code,
    )
    return {"success": True, "message": "Password reset successfully", "method": method}
