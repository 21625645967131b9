"""Per-IP rate limiting for the HTTP surface.

This throttles callers by address before any credential work happens.
Per-token quotas live in the credential store, see QuotaUsecase.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# Shared per-IP budget across all endpoints
RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"

# Stricter budget for admin password attempts
ADMIN_LOGIN_LIMIT = settings.admin_login_rate_limit

limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[RATE_LIMIT]
)
