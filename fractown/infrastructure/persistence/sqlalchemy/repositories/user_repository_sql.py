from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto
from .....exceptions import ConflictError
from .....utils import utcnow
from .base import SqlRepository

class SqlUserRepository(SqlRepository, UserRepository):
    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            name=user.name,
            phone_number=user.phone_number,
            country_code=user.country_code,
            email=user.email,
            is_verified=bool(user.is_verified),
            is_active=bool(user.is_active),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def get_by_phone(self, phone_number: str) -> Optional[UserDto]:
        with self._session() as session:
            user = session.exec(select(User).where(User.phone_number == phone_number)).first()
            return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        with self._session() as session:
            user = session.get(User, user_id)
            return self._to_dto(user) if user else None

    def create(self, name: str, phone_number: str, country_code: str, email: Optional[str] = None) -> UserDto:
        user = User(
            name=name,
            phone_number=phone_number,
            country_code=country_code,
            email=email,
            is_verified=True,
            is_active=True,
        )
        with self._session() as session:
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError("User already exists")
            return self._to_dto(user)

    def mark_verified(self, user_id: str) -> Optional[UserDto]:
        with self._session() as session:
            user = session.get(User, user_id)
            if not user:
                return None
            if not (user.is_verified and user.is_active):
                user.is_verified = True
                user.is_active = True
                user.updated_at = utcnow()
                session.add(user)
                session.commit()
            return self._to_dto(user)

    def set_active(self, user_id: str, active: bool) -> None:
        with self._session() as session:
            user = session.get(User, user_id)
            if not user:
                return
            user.is_active = active
            user.updated_at = utcnow()
            session.add(user)
            session.commit()
