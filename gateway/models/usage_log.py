"""Usage log model."""
from sqlalchemy import Column, String, Text, DateTime, Integer, Uuid
from gateway.common.clock import utc_now
from gateway.common.database import Base
from gateway.common.id_utils import generate_uuid7


class UsageLog(Base):
    """One row per data-plane request.

    ``token_id`` is NULL when authentication failed before a token was
    resolved. It carries no foreign key so history survives token deletion.
    """
    __tablename__ = "api_usage_logs"

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    token_id = Column(Uuid, nullable=True, index=True)
    scope_kind = Column(String(20), nullable=True)
    method = Column(String(10), nullable=False)
    endpoint = Column(String(255), nullable=False)
    full_url = Column(Text, nullable=True)
    status_code = Column(Integer, nullable=False)
    response_time_ms = Column(Integer, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    referer = Column(String(255), nullable=True)
    request_id = Column(String(64), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    def __repr__(self):
        return f"<UsageLog(id={self.id}, token_id={self.token_id}, endpoint={self.endpoint})>"
