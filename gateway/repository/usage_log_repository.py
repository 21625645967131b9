"""Usage log repository."""
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models.usage_log import UsageLog
from .exceptions import translate_db_errors


class UsageLogRepository:
    """Repository for UsageLog model operations. Rows are never updated."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields) -> UsageLog:
        """Append a usage log entry."""
        with translate_db_errors("write usage log"):
            log = UsageLog(**fields)
            self.session.add(log)
            await self.session.flush()
            return log

    async def list_by_token(
        self,
        token_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[UsageLog], int]:
        """List usage logs for a token.

        Args:
            token_id: Token UUID
            limit: Maximum number of logs to return
            offset: Number of logs to skip

        Returns:
            Tuple of (list of UsageLog objects, total count)
        """
        with translate_db_errors("list usage logs"):
            result = await self.session.execute(
                select(UsageLog)
                .where(UsageLog.token_id == token_id)
                .order_by(UsageLog.created_at.desc(), UsageLog.id.desc())
                .limit(limit)
                .offset(offset)
            )
            logs = list(result.scalars().all())

            count_result = await self.session.execute(
                select(func.count()).select_from(UsageLog).where(UsageLog.token_id == token_id)
            )
            return logs, count_result.scalar_one()
