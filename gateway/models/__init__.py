"""Database models."""
from gateway.models.admin import AdminUser, AdminSession
from gateway.models.token import Token
from gateway.models.rate_limit import RateLimitCounter
from gateway.models.usage_log import UsageLog
from gateway.models.audit_log import AuditLog
from gateway.models.dataset import OpenTicket, Machine

__all__ = [
    "AdminUser",
    "AdminSession",
    "Token",
    "RateLimitCounter",
    "UsageLog",
    "AuditLog",
    "OpenTicket",
    "Machine",
]
