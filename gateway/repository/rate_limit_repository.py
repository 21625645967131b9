"""Quota counter repository."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.id_utils import generate_uuid7
from gateway.models.rate_limit import RateLimitCounter
from .exceptions import translate_db_errors


class RateLimitRepository:
    """Repository for RateLimitCounter rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        if self.session.get_bind().dialect.name == "postgresql":
            return postgresql.insert(RateLimitCounter)
        return sqlite.insert(RateLimitCounter)

    async def get_count(self, token_id: UUID, window_type: str, window_start: datetime) -> int:
        """Current count for a window, 0 when the row does not exist yet."""
        with translate_db_errors("read rate limit counter"):
            result = await self.session.execute(
                select(RateLimitCounter.request_count).where(
                    RateLimitCounter.token_id == token_id,
                    RateLimitCounter.window_type == window_type,
                    RateLimitCounter.window_start == window_start,
                )
            )
            return result.scalar_one_or_none() or 0

    async def increment(
        self,
        token_id: UUID,
        window_type: str,
        window_start: datetime,
        window_end: datetime,
        ceiling: int,
        now: datetime,
    ) -> int | None:
        """Atomically insert the counter or increment it while below ``ceiling``.

        Args:
            token_id: Token UUID
            window_type: minute, hour or day
            window_start: Window start in UTC
            window_end: Window end in UTC
            ceiling: Maximum count for the window
            now: Current instant

        Returns:
            The new count, or None when the counter already reached the
            ceiling (a concurrent request took the last slot)
        """
        stmt = self._insert().values(
            id=generate_uuid7(),
            token_id=token_id,
            window_type=window_type,
            window_start=window_start,
            window_end=window_end,
            request_count=1,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["token_id", "window_type", "window_start"],
            set_={
                "request_count": RateLimitCounter.request_count + 1,
                "updated_at": now,
            },
            where=RateLimitCounter.request_count < ceiling,
        ).returning(RateLimitCounter.request_count)

        with translate_db_errors("increment rate limit counter"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
