from passlib.context import CryptContext

from ...application.ports.password_hasher import PasswordHasher


class PasslibPasswordHasher(PasswordHasher):
    """bcrypt via passlib; used for admin passwords and TOTP backup codes."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            return self._context.verify(secret, hashed)
        except (ValueError, TypeError):
            # Malformed or unknown hash format
            return False
