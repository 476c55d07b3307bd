# Models package (re-export feature modules for stable imports)
from .users.user import User
from .users.session import AuthSession
from .admin.admin_user import AdminUser
from .auth.otp import OTPCode
from .auth.totp import TOTPCredential, TOTPBackupCode

__all__ = [
    "User",
    "AuthSession",
    "AdminUser",
    "OTPCode",
    "TOTPCredential",
    "TOTPBackupCode",
]
