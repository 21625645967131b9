"""Per-token quota enforcement backed by store counters."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.clock import Clock, utc_now
from gateway.common.config import settings
from gateway.domain.quota import QuotaDecision, RateCeilings, Window, active_windows, day_timezone
from gateway.repository.rate_limit_repository import RateLimitRepository
from .base import store_guard

logger = logging.getLogger(__name__)


class _QuotaDenied(Exception):
    """Aborts the counter transaction so nothing is incremented."""

    def __init__(self, window: Window):
        self.window = window
        super().__init__(window.window_type.value)


class QuotaUsecase:
    """Check and consume minute/hour/day quotas for a token."""

    def __init__(self, session: AsyncSession, clock: Clock = utc_now, day_tz: str | None = None):
        self.session = session
        self.clock = clock
        self.day_tz = day_timezone(day_tz or settings.quota_day_timezone)
        self.rate_limit_repo = RateLimitRepository(session)

    async def check_and_consume(self, token_id: UUID, ceilings: RateCeilings) -> QuotaDecision:
        """Admit one request against every window with a nonzero ceiling.

        Windows are read in order minute, hour, day and the first exhausted
        one denies the request without touching any counter. Otherwise each
        window is incremented once with a conditional upsert; losing a race
        for the last slot also denies, and the whole transaction rolls back.

        Args:
            token_id: Token UUID
            ceilings: Configured ceilings, 0 meaning unlimited

        Returns:
            QuotaDecision; denied decisions carry the window and retry_after
        """
        now = self.clock()
        windows = active_windows(ceilings, now, self.day_tz)
        if not windows:
            return QuotaDecision.allow()

        try:
            with store_guard("check quota"):
                async with self.session.begin():
                    for window, ceiling in windows:
                        count = await self.rate_limit_repo.get_count(
                            token_id, window.window_type.value, window.start
                        )
                        if count >= ceiling:
                            raise _QuotaDenied(window)

                    for window, ceiling in windows:
                        new_count = await self.rate_limit_repo.increment(
                            token_id=token_id,
                            window_type=window.window_type.value,
                            window_start=window.start,
                            window_end=window.end,
                            ceiling=ceiling,
                            now=now,
                        )
                        if new_count is None:
                            raise _QuotaDenied(window)
        except _QuotaDenied as denied:
            logger.info("Quota exceeded for token %s (per %s)", token_id, denied.window.window_type.value)
            return QuotaDecision.deny(denied.window, now)

        return QuotaDecision.allow()
