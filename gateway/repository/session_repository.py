"""Admin session repository."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models.admin import AdminSession
from .exceptions import translate_db_errors


class SessionRepository:
    """Repository for AdminSession model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        session_token: str,
        admin_id: UUID,
        expires_at: datetime,
        ip_address: str | None,
        user_agent: str | None,
    ) -> AdminSession:
        with translate_db_errors("create session", duplicate_message="Session token collision detected"):
            admin_session = AdminSession(
                session_token=session_token,
                admin_id=admin_id,
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            self.session.add(admin_session)
            await self.session.flush()
            return admin_session

    async def get_by_token(self, session_token: str) -> AdminSession | None:
        """Get a session and its admin by token value."""
        with translate_db_errors("load session"):
            result = await self.session.execute(
                select(AdminSession).where(AdminSession.session_token == session_token)
            )
            return result.unique().scalar_one_or_none()

    async def touch(self, session_id: UUID, at: datetime) -> None:
        """Record access time. Expiry is left untouched."""
        with translate_db_errors("touch session"):
            await self.session.execute(
                update(AdminSession)
                .where(AdminSession.id == session_id)
                .values(last_accessed_at=at)
                .execution_options(synchronize_session=False)
            )

    async def delete(self, session_token: str) -> bool:
        """Delete a session.

        Returns:
            True if a row was deleted
        """
        with translate_db_errors("delete session"):
            result = await self.session.execute(
                delete(AdminSession).where(AdminSession.session_token == session_token)
            )
            return result.rowcount > 0
