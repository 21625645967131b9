"""Admin account repository."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models.admin import AdminUser
from .exceptions import translate_db_errors


class AdminRepository:
    """Repository for AdminUser model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: str,
        full_name: str | None = None,
    ) -> AdminUser:
        """Create a new admin account.

        Raises:
            DuplicateRecordException: If username or email already exists
        """
        with translate_db_errors("create admin", duplicate_message="Username or email already exists"):
            admin = AdminUser(
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                full_name=full_name,
            )
            self.session.add(admin)
            await self.session.flush()
            await self.session.refresh(admin)
            return admin

    async def get_by_id(self, admin_id: UUID) -> AdminUser | None:
        with translate_db_errors("load admin"):
            result = await self.session.execute(
                select(AdminUser).where(AdminUser.id == admin_id)
            )
            return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> AdminUser | None:
        with translate_db_errors("load admin"):
            result = await self.session.execute(
                select(AdminUser).where(AdminUser.username == username)
            )
            return result.scalar_one_or_none()

    async def count(self) -> int:
        with translate_db_errors("count admins"):
            result = await self.session.execute(select(func.count()).select_from(AdminUser))
            return result.scalar_one()

    async def update_last_login(self, admin: AdminUser, at: datetime, ip_address: str | None) -> None:
        with translate_db_errors("record admin login"):
            admin.last_login_at = at
            admin.last_login_ip = ip_address
            await self.session.flush()
