"""Administrator account and session models."""
from sqlalchemy import Column, String, DateTime, Boolean, Uuid, ForeignKey
from sqlalchemy.orm import relationship
from gateway.common.clock import utc_now
from gateway.common.database import Base
from gateway.common.id_utils import generate_uuid7


class AdminUser(Base):
    """Human operator of the admin plane."""
    __tablename__ = "admin_users"

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="admin")  # super_admin, admin, viewer
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    last_login_ip = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    sessions = relationship("AdminSession", back_populates="admin", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<AdminUser(id={self.id}, username={self.username}, role={self.role})>"


class AdminSession(Base):
    """Login session; deleted on logout, otherwise valid until expiry."""
    __tablename__ = "admin_sessions"

    id = Column(Uuid, primary_key=True, default=generate_uuid7)
    session_token = Column(String(128), unique=True, nullable=False, index=True)
    admin_id = Column(Uuid, ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    last_accessed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    admin = relationship("AdminUser", back_populates="sessions", lazy="joined")

    def __repr__(self):
        return f"<AdminSession(id={self.id}, admin_id={self.admin_id})>"
