"""Audit log model."""
from sqlalchemy import Column, String, Text, DateTime, JSON, Uuid
from gateway.common.clock import utc_now
from gateway.common.database import Base
from gateway.common.id_utils import generate_uuid7


class AuditLog(Base):
    """Record of an administrative mutation."""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    admin_id = Column(Uuid, nullable=True, index=True)
    action = Column(String(50), nullable=False)  # create_token, revoke_token, ...
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(64), nullable=True, index=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action}, resource_id={self.resource_id})>"
