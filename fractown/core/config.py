# fractown/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "fractOWN Auth API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./fractown.db")

    # CORS Settings
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")
    ALLOWED_METHODS: str = os.environ.get("ALLOWED_METHODS", "GET,POST,PUT,DELETE,OPTIONS")
    ALLOWED_HEADERS: str = os.environ.get("ALLOWED_HEADERS", "*")
    CORS_ALLOW_CREDENTIALS: bool = True

    # Middleware settings
    GZIP_MIN_SIZE: int = 500

    # Twilio Settings
    TWILIO_ACCOUNT_SID: str = os.environ.get("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.environ.get("TWILIO_AUTH_TOKEN", "")
    TWILIO_PHONE_NUMBER: str = os.environ.get("TWILIO_PHONE_NUMBER", "")

    # SendGrid Settings
    SENDGRID_API_KEY: str = os.environ.get("SENDGRID_API_KEY", "")
    FROM_EMAIL: str = os.environ.get("FROM_EMAIL", "noreply@fractown.com")

    # Outbound provider calls must never stall OTP issuance
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # OTP login
    OTP_EXPIRY_MINUTES: int = 5
    OTP_RATE_LIMIT_MAX_REQUESTS: int = 5
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    OTP_VERIFY_MAX_ATTEMPTS: int = 5
    OTP_VERIFY_WINDOW_SECONDS: int = 15 * 60
    DEFAULT_COUNTRY_CODE: str = "+91"

    # Sessions
    USER_SESSION_TTL_HOURS: int = 24
    ADMIN_SESSION_TTL_HOURS: int = 12

    # TOTP
    TOTP_ISSUER: str = "fractOWN"
    TOTP_VALID_WINDOW: int = 1
    TOTP_BACKUP_CODE_COUNT: int = 8
    TOTP_SETUP_MAX_ATTEMPTS: int = 3
    TOTP_SETUP_WINDOW_SECONDS: int = 15 * 60

    # Passwords
    BCRYPT_ROUNDS: int = 12
    MIN_PASSWORD_LENGTH: int = 8
    ADMIN_BOOTSTRAP_USERNAME: Optional[str] = None
    ADMIN_BOOTSTRAP_PASSWORD: Optional[str] = None
    ADMIN_BOOTSTRAP_EMAIL: Optional[str] = None
    ADMIN_LOGIN_MAX_ATTEMPTS: int = 10
    ADMIN_LOGIN_WINDOW_SECONDS: int = 15 * 60
    TOTP_RESET_MAX_ATTEMPTS: int = 5
    TOTP_RESET_WINDOW_SECONDS: int = 15 * 60

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    MAX_REQUEST_SIZE: int = 64 * 1024
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Helper methods for list envs
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_HEADERS)

    @property
    def sms_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_PHONE_NUMBER)

    @property
    def email_configured(self) -> bool:
        return bool(self.SENDGRID_API_KEY)

@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # Normalize ALLOWED_ORIGINS if provided as comma-separated string env var CORS_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
