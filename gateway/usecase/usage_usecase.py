"""Detached per-request usage recording."""
import asyncio
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.common.clock import utc_now
from gateway.repository.token_repository import TokenRepository
from gateway.repository.usage_log_repository import UsageLogRepository

logger = logging.getLogger(__name__)


@dataclass
class UsageEntry:
    """Everything known about a data-plane request once its status is final."""

    method: str
    endpoint: str
    status_code: int
    response_time_ms: int
    token_id: UUID | None = None  # None when authentication failed
    scope_kind: str | None = None
    full_url: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    referer: str | None = None
    request_id: str | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=utc_now)


class UsageRecorder:
    """Writes usage logs in background tasks with their own sessions.

    Failures are logged and dropped; they never reach the request that
    produced the entry. Pending tasks are strongly referenced until done
    so they are not garbage collected mid-flight.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._background_tasks: set[asyncio.Task] = set()

    def record_usage(self, entry: UsageEntry) -> None:
        """Schedule the write and return immediately."""
        task = asyncio.create_task(self._write(entry))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _write(self, entry: UsageEntry) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await UsageLogRepository(session).create(**asdict(entry))
                    # Only successful requests count towards the token's usage statistics
                    if entry.token_id is not None and entry.status_code < 400:
                        await TokenRepository(session).record_usage(
                            token_id=entry.token_id,
                            used_at=entry.created_at,
                            ip_address=entry.ip_address,
                            endpoint=entry.endpoint,
                        )
        except Exception as e:
            logger.warning(
                "Failed to record usage for %s %s (request_id=%s): %s",
                entry.method, entry.endpoint, entry.request_id, e,
            )

    @property
    def pending(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for every scheduled write, including ones scheduled meanwhile."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
