from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Optional


class AuthError(Exception):
    """Base class for every failure the auth flow reports to its callers."""

    status_code = 400
    code = "AUTH_ERROR"
    public_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(AuthError):
    status_code = 400
    code = "VALIDATION_ERROR"
    public_message = "Invalid request"


class AuthenticationError(AuthError):
    """Authentication decisions. The boundary only ever shows `public_message`."""

    status_code = 401
    code = "AUTHENTICATION_FAILED"
    public_message = "Authentication failed"


class NotFoundError(AuthError):
    status_code = 404
    code = "NOT_FOUND"
    public_message = "Not found"


class ConflictError(AuthError):
    status_code = 409
    code = "CONFLICT"
    public_message = "Already exists"


class RateLimitExceeded(AuthError):
    status_code = 429
    code = "RATE_LIMITED"
    public_message = "Too many requests. Please try again later."


class TransientError(AuthError):
    """Storage or network failure; safe to retry."""

    status_code = 503
    code = "TEMPORARILY_UNAVAILABLE"
    public_message = "Service temporarily unavailable, please retry"


# Validation kinds
class InvalidCodeFormat(ValidationError):
    code = "INVALID_CODE_FORMAT"
    public_message = "Code must be 6 digits"


class NameRequiredForNewUser(ValidationError):
    code = "NAME_REQUIRED"
    public_message = "Name is required for new users"


class PasswordTooShort(ValidationError):
    code = "PASSWORD_TOO_SHORT"
    public_message = "Password must be at least 8 characters long"


# Authentication kinds
class InvalidOrExpiredCode(AuthenticationError):
    code = "INVALID_OTP"
    public_message = "Invalid or expired OTP"


class InvalidCredentials(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    public_message = "Invalid username or password"


class SessionInvalid(AuthenticationError):
    code = "SESSION_INVALID"
    public_message = "Invalid session"


class InvalidTotpCode(AuthenticationError):
    code = "INVALID_VERIFICATION_CODE"
    public_message = "Invalid verification code"


class CurrentPasswordIncorrect(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    public_message = "Current password is incorrect"


class InvalidBackupCode(InvalidTotpCode):
    pass


def create_error_response(error_message: str, status_code: int = 400, code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message
    }
    if code:
        body["code"] = code
    return body

async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    # Authentication failures never reveal which check failed
    if isinstance(exc, AuthenticationError):
        message = type(exc).public_message
    else:
        message = exc.message
    headers = {"Retry-After": "60"} if isinstance(exc, (TransientError, RateLimitExceeded)) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(message, exc.status_code, exc.code),
        headers=headers,
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=create_error_response(message, 400, ValidationError.code)
    )

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404, 405, ...) in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )
