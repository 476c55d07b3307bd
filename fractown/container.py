import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.engine import Engine

from .core.config import Settings
from .application.ports.notification_gateway import NotificationGateway
from .application.ports.password_hasher import PasswordHasher
from .application.ports.rate_limiter import RateLimiter
from .application.services.admin_auth_service import AdminAuthService
from .application.services.maintenance import AuthMaintenance
from .application.services.otp_login_service import OtpLoginService
from .application.services.session_service import SessionService
from .application.services.totp_service import TotpService
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.notifications.sendgrid_gateway import SendGridEmailGateway
from .infrastructure.notifications.twilio_gateway import TwilioSmsGateway
from .infrastructure.persistence.sqlalchemy.repositories.admin_repository_sql import SqlAdminRepository
from .infrastructure.persistence.sqlalchemy.repositories.otp_store_sql import SqlOtpStore
from .infrastructure.persistence.sqlalchemy.repositories.session_repository_sql import SqlSessionRepository
from .infrastructure.persistence.sqlalchemy.repositories.totp_store_sql import SqlTotpStore
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.security.passlib_hasher import PasslibPasswordHasher
from .utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Services:
    sessions: SessionService
    otp_login: OtpLoginService
    totp: TotpService
    admin_auth: AdminAuthService
    maintenance: AuthMaintenance


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.REDIS_URL:
        from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()


def build_services(settings: Settings, engine: Engine, sms_gateway: Optional[NotificationGateway] = None,
                   email_gateway: Optional[NotificationGateway] = None, rate_limiter: Optional[RateLimiter] = None,
                   hasher: Optional[PasswordHasher] = None, clock=utcnow) -> Services:
    """Wire the SQL adapters, gateways and services once for the whole process."""
    otp_store = SqlOtpStore(engine)
    totp_store = SqlTotpStore(engine)
    session_repo = SqlSessionRepository(engine)
    user_repo = SqlUserRepository(engine)
    admin_repo = SqlAdminRepository(engine)

    if sms_gateway is None:
        sms_gateway = TwilioSmsGateway(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    if email_gateway is None:
        email_gateway = SendGridEmailGateway(
            api_key=settings.SENDGRID_API_KEY,
            from_email=settings.FROM_EMAIL,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    rate_limiter = rate_limiter or build_rate_limiter(settings)
    hasher = hasher or PasslibPasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    audit = StdAuditLogger()

    sessions = SessionService(session_repo=session_repo, user_repo=user_repo, admin_repo=admin_repo, clock=clock)
    otp_login = OtpLoginService(
        otp_store=otp_store,
        user_repo=user_repo,
        sessions=sessions,
        sms_gateway=sms_gateway,
        email_gateway=email_gateway,
        rate_limiter=rate_limiter,
        audit=audit,
        clock=clock,
        code_ttl=timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
        session_ttl=timedelta(hours=settings.USER_SESSION_TTL_HOURS),
        rate_limit_max_requests=settings.OTP_RATE_LIMIT_MAX_REQUESTS,
        rate_limit_window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SECONDS,
        verify_max_attempts=settings.OTP_VERIFY_MAX_ATTEMPTS,
        verify_window_seconds=settings.OTP_VERIFY_WINDOW_SECONDS,
        default_country_code=settings.DEFAULT_COUNTRY_CODE,
    )
    totp = TotpService(
        totp_store=totp_store,
        admin_repo=admin_repo,
        hasher=hasher,
        rate_limiter=rate_limiter,
        audit=audit,
        clock=clock,
        issuer=settings.TOTP_ISSUER,
        valid_window=settings.TOTP_VALID_WINDOW,
        backup_code_count=settings.TOTP_BACKUP_CODE_COUNT,
        setup_max_attempts=settings.TOTP_SETUP_MAX_ATTEMPTS,
        setup_window_seconds=settings.TOTP_SETUP_WINDOW_SECONDS,
    )
    admin_auth = AdminAuthService(
        admin_repo=admin_repo,
        hasher=hasher,
        sessions=sessions,
        totp=totp,
        sms_gateway=sms_gateway,
        rate_limiter=rate_limiter,
        audit=audit,
        session_ttl=timedelta(hours=settings.ADMIN_SESSION_TTL_HOURS),
        min_password_length=settings.MIN_PASSWORD_LENGTH,
        default_country_code=settings.DEFAULT_COUNTRY_CODE,
        login_max_attempts=settings.ADMIN_LOGIN_MAX_ATTEMPTS,
        login_window_seconds=settings.ADMIN_LOGIN_WINDOW_SECONDS,
        reset_max_attempts=settings.TOTP_RESET_MAX_ATTEMPTS,
        reset_window_seconds=settings.TOTP_RESET_WINDOW_SECONDS,
    )
    maintenance = AuthMaintenance(otp_store=otp_store, session_repo=session_repo, clock=clock)
    return Services(sessions=sessions, otp_login=otp_login, totp=totp, admin_auth=admin_auth,
                    maintenance=maintenance)
