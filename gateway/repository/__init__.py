"""Repository layer for database operations."""
from gateway.repository.admin_repository import AdminRepository
from gateway.repository.session_repository import SessionRepository
from gateway.repository.token_repository import TokenRepository
from gateway.repository.rate_limit_repository import RateLimitRepository
from gateway.repository.usage_log_repository import UsageLogRepository
from gateway.repository.audit_log_repository import AuditLogRepository
from gateway.repository.data_repository import DataRepository

__all__ = [
    "AdminRepository",
    "SessionRepository",
    "TokenRepository",
    "RateLimitRepository",
    "UsageLogRepository",
    "AuditLogRepository",
    "DataRepository",
]
