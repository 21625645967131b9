"""Audit log repository for database operations."""
from typing import Any
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models.audit_log import AuditLog
from .exceptions import translate_db_errors


class AuditLogRepository:
    """Repository for AuditLog model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        admin_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: str | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        description: str | None = None,
    ) -> AuditLog:
        """Create a new audit log entry.

        Runs inside the caller's transaction so the entry commits or rolls
        back together with the mutation it describes.

        Args:
            admin_id: Acting admin UUID
            action: Action name, e.g. ``revoke_token``
            resource_type: Kind of resource mutated
            resource_id: Identifier of the mutated resource
            old_values: Snapshot before the mutation
            new_values: Snapshot after the mutation
            ip_address: Admin client IP
            user_agent: Admin client user agent
            description: Human readable summary

        Returns:
            Created AuditLog object
        """
        with translate_db_errors("write audit log"):
            log = AuditLog(
                admin_id=admin_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                old_values=old_values,
                new_values=new_values,
                ip_address=ip_address,
                user_agent=user_agent,
                description=description,
            )
            self.session.add(log)
            await self.session.flush()
            return log

    async def list_recent(
        self,
        limit: int = 100,
        offset: int = 0,
        resource_id: str | None = None,
        action: str | None = None,
    ) -> tuple[list[AuditLog], int]:
        """List audit logs, newest first.

        Args:
            limit: Maximum number of logs to return
            offset: Number of logs to skip
            resource_id: Only entries for this resource
            action: Only entries with this action

        Returns:
            Tuple of (list of AuditLog objects, total count)
        """
        conditions = []
        if resource_id:
            conditions.append(AuditLog.resource_id == resource_id)
        if action:
            conditions.append(AuditLog.action == action)

        with translate_db_errors("list audit logs"):
            result = await self.session.execute(
                select(AuditLog)
                .where(*conditions)
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .limit(limit)
                .offset(offset)
            )
            logs = list(result.scalars().all())

            count_result = await self.session.execute(
                select(func.count()).select_from(AuditLog).where(*conditions)
            )
            return logs, count_result.scalar_one()
