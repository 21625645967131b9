"""API token model."""
from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, JSON, Uuid, ForeignKey
from gateway.common.clock import utc_now
from gateway.common.database import Base
from gateway.common.id_utils import generate_uuid7


class Token(Base):
    """Data-plane API credential.

    The secret itself is never stored: ``token_hash`` is its SHA-256 digest
    and ``token_hint`` the masked rendering shown in listings.
    """
    __tablename__ = "api_tokens"

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    environment = Column(String(20), nullable=False, default="production")
    token_hash = Column(String(64), nullable=False, unique=True, index=True)  # SHA-256 hash
    token_prefix = Column(String(16), nullable=False)  # tok_live, tok_dev, ...
    token_hint = Column(String(32), nullable=False)  # tok_live_****abcd

    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_by = Column(Uuid, ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True)
    revoked_reason = Column(String(255), nullable=True)
    ip_allowlist = Column(JSON, nullable=False, default=list)  # exact addresses

    # 0 means unlimited
    rate_limit_per_minute = Column(Integer, nullable=False, default=0)
    rate_limit_per_hour = Column(Integer, nullable=False, default=0)
    rate_limit_per_day = Column(Integer, nullable=False, default=0)

    # Scope
    vendor_name = Column(String(100), nullable=True)
    filter_column = Column(String(100), nullable=True)
    filter_value = Column(String(255), nullable=True)
    is_super = Column(Boolean, nullable=False, default=False)

    # Usage statistics
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    last_used_ip = Column(String(45), nullable=True)
    last_used_endpoint = Column(String(255), nullable=True)
    total_requests = Column(Integer, nullable=False, default=0)

    created_by = Column(Uuid, ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<Token(id={self.id}, name={self.name}, hint={self.token_hint})>"
