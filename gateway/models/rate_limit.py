"""Quota counter model."""
from sqlalchemy import Column, String, DateTime, Integer, Uuid, UniqueConstraint
from gateway.common.clock import utc_now
from gateway.common.database import Base
from gateway.common.id_utils import generate_uuid7


class RateLimitCounter(Base):
    """Request count for one token inside one minute/hour/day window."""
    __tablename__ = "rate_limit_counters"
    __table_args__ = (
        UniqueConstraint("token_id", "window_type", "window_start", name="uq_rate_limit_window"),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    token_id = Column(Uuid, nullable=False, index=True)
    window_type = Column(String(10), nullable=False)  # minute, hour, day
    window_start = Column(DateTime(timezone=True), nullable=False)
    window_end = Column(DateTime(timezone=True), nullable=False)
    request_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __repr__(self):
        return (
            f"<RateLimitCounter(token_id={self.token_id}, window={self.window_type}, "
            f"start={self.window_start}, count={self.request_count})>"
        )
