from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .....db.models import AdminUser
from .....application.ports.admin_repo import AdminRepository, AdminDto
from .....exceptions import ConflictError
from .base import SqlRepository


class SqlAdminRepository(SqlRepository, AdminRepository):
    def _to_dto(self, admin: AdminUser) -> AdminDto:
        return AdminDto(
            id=admin.id,
            username=admin.username,
            email=admin.email,
            password_hash=admin.password_hash,
            role=admin.role,
            phone_number=admin.phone_number,
            country_code=admin.country_code,
            created_at=admin.created_at,
        )

    def get_by_username(self, username: str) -> Optional[AdminDto]:
        with self._session() as session:
            admin = session.exec(select(AdminUser).where(AdminUser.username == username)).first()
            return self._to_dto(admin) if admin else None

    def get_by_id(self, admin_id: str) -> Optional[AdminDto]:
        with self._session() as session:
            admin = session.get(AdminUser, admin_id)
            return self._to_dto(admin) if admin else None

    def create(self, username: str, email: str, password_hash: str, role: str = "admin") -> AdminDto:
        admin = AdminUser(username=username, email=email, password_hash=password_hash, role=role)
        with self._session() as session:
            session.add(admin)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError("Admin user already exists")
            return self._to_dto(admin)

    def update_password(self, admin_id: str, password_hash: str) -> None:
        with self._session() as session:
            admin = session.get(AdminUser, admin_id)
            if not admin:
                return
            admin.password_hash = password_hash
            session.add(admin)
            session.commit()

    def update_profile(self, admin_id: str, email: Optional[str], phone_number: Optional[str],
                       country_code: Optional[str]) -> Optional[AdminDto]:
        with self._session() as session:
            admin = session.get(AdminUser, admin_id)
            if not admin:
                return None
            if email is not None:
                admin.email = email
            if phone_number is not None:
                admin.phone_number = phone_number
            if country_code is not None:
                admin.country_code = country_code
            session.add(admin)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError("Email already in use")
            return self._to_dto(admin)
