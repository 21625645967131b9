"""Application startup initialization."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.config import Settings
from gateway.domain.auth_service import AdminRole, hash_password
from gateway.repository.admin_repository import AdminRepository
from gateway.repository.exceptions import RepositoryException

logger = logging.getLogger(__name__)


async def ensure_bootstrap_admin(session: AsyncSession, settings: Settings) -> bool:
    """Create the configured super admin if no admin account exists yet.

    Args:
        session: Database session
        settings: Application settings carrying the bootstrap credentials

    Returns:
        True if an account was created
    """
    if not settings.bootstrap_admin_username or not settings.bootstrap_admin_password:
        return False

    admin_repo = AdminRepository(session)
    try:
        async with session.begin():
            if await admin_repo.count() > 0:
                logger.info("Admin accounts exist, skipping bootstrap admin")
                return False

            await admin_repo.create(
                username=settings.bootstrap_admin_username,
                email=settings.bootstrap_admin_email or f"{settings.bootstrap_admin_username}@example.com",
                password_hash=hash_password(settings.bootstrap_admin_password),
                role=AdminRole.SUPER_ADMIN.value,
                full_name="Bootstrap Administrator",
            )
    except RepositoryException as e:
        # Another worker may have seeded concurrently; startup continues either way
        logger.error(f"Error creating bootstrap admin: {e.message}")
        return False

    logger.info(f"Bootstrap admin '{settings.bootstrap_admin_username}' created")
    return True
