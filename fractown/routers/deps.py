from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..container import Services
from ..application.services.session_service import Subject, SUBJECT_ADMIN, SUBJECT_USER
from ..exceptions import SessionInvalid

USER_COOKIE = "sessionToken"
ADMIN_COOKIE = "adminSessionToken"

# auto_error=False so a missing header falls through to the cookie
bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _token(request: Request, credentials: Optional[HTTPAuthorizationCredentials], cookie: str) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(cookie)


def get_user_token(request: Request,
                   credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return _token(request, credentials, USER_COOKIE)


def get_admin_token(request: Request,
                    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return _token(request, credentials, ADMIN_COOKIE)


def get_current_user(token: Optional[str] = Depends(get_user_token),
                     services: Services = Depends(get_services)) -> Subject:
    subject = services.sessions.validate(token)
    if subject.subject_type != SUBJECT_USER:
        raise SessionInvalid()
    return subject


def get_current_admin(token: Optional[str] = Depends(get_admin_token),
                      services: Services = Depends(get_services)) -> Subject:
    subject = services.sessions.validate(token)
    if subject.subject_type != SUBJECT_ADMIN:
        raise SessionInvalid()
    return subject
