import hashlib
import re
import secrets
from datetime import datetime, timezone
from typing import Optional

# Longest prefixes first so "+358" wins over "+35"
_COUNTRY_CODES = (
    "+358", "+971", "+966", "+880",
    "+44", "+91", "+86", "+81", "+49", "+33", "+39", "+34", "+55", "+52",
    "+61", "+82", "+31", "+46", "+47", "+45", "+48", "+65", "+60", "+62",
    "+1", "+7",
)

BACKUP_CODE_PATTERN = re.compile(r"^[A-Z0-9]{8}$")
SIX_DIGIT_PATTERN = re.compile(r"[0-9]{6}")


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp; naive datetimes are rejected by the database layer."""
    return datetime.now(timezone.utc)


# =========================
# OTP Generation
# =========================
def generate_otp() -> str:
    """Generate a 6-digit OTP drawn uniformly from [100000, 999999]."""
    return str(100000 + secrets.randbelow(900000))


def is_six_digit_code(code: Optional[str]) -> bool:
    return bool(code) and SIX_DIGIT_PATTERN.fullmatch(code) is not None


# =========================
# Session tokens
# =========================
def generate_session_token() -> str:
    """256 bits from the OS CSPRNG, 43 url-safe characters."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


# =========================
# Backup codes
# =========================
def generate_backup_code() -> str:
    return secrets.token_hex(4).upper()


def normalize_backup_code(code: str) -> Optional[str]:
    """Strip whitespace and upper-case; None when the result is not 8 alphanumerics."""
    if not code:
        return None
    normalized = re.sub(r"\s+", "", code).upper()
    if not BACKUP_CODE_PATTERN.match(normalized):
        return None
    return normalized


# =========================
# Phone helpers
# =========================
def hash_phone_number(phone: str) -> str:
    """Hash phone number for logs (one-way hash)"""
    return hashlib.sha256(phone.encode()).hexdigest()


def clean_phone_number(phone: str) -> str:
    return re.sub(r"[^\d+]", "", phone)


def extract_country_code(phone: str, default: str = "+91") -> str:
    """Extract country code from phone number"""
    phone_clean = clean_phone_number(phone)
    for prefix in _COUNTRY_CODES:
        if phone_clean.startswith(prefix):
            return prefix
    return default
