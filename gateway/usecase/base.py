"""Shared helpers for usecases."""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import OperationalError, InterfaceError

from gateway.common.exceptions import StoreUnavailableException, InternalServerException
from gateway.repository.exceptions import DatabaseConnectionException, DatabaseOperationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminContext:
    """Who performed an admin-plane request, for audit entries."""

    admin_id: UUID
    role: str
    ip_address: str | None = None
    user_agent: str | None = None


@contextmanager
def store_guard(operation: str):
    """Translate credential store failures raised inside the block.

    Unreachable or locked stores become StoreUnavailableException (503) so
    they are reported apart from authentication failures; other failed
    operations become InternalServerException.
    """
    try:
        yield
    except (DatabaseConnectionException, OperationalError, InterfaceError, ConnectionError, TimeoutError) as e:
        logger.error("Credential store unavailable during %s: %s", operation, e)
        raise StoreUnavailableException() from e
    except DatabaseOperationException as e:
        logger.error("Credential store operation failed during %s: %s", operation, e.detail or e)
        raise InternalServerException(f"Failed to {operation}") from e
