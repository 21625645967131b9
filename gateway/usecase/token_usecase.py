"""Token usecase for the admin plane."""
import logging
from types import SimpleNamespace
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.clock import Clock, utc_now
from gateway.common.config import settings
from gateway.common.exceptions import (
    ConflictException,
    NoFieldsProvidedException,
    NotFoundException,
    ValidationException,
    InternalServerException,
)
from gateway.domain.schemas import (
    TokenCreateRequest,
    TokenCreateResponse,
    TokenUpdateRequest,
    TokenListResponse,
    TokenResponse,
    UsageLogResponse,
    AuditLogResponse,
)
from gateway.domain.scope import ScopeKind, resolve_scope, is_known_scope_column
from gateway.domain.token_service import create_token_info, token_snapshot
from gateway.models.token import Token
from gateway.repository.exceptions import DuplicateRecordException
from gateway.repository.token_repository import TokenRepository
from gateway.repository.audit_log_repository import AuditLogRepository
from gateway.repository.usage_log_repository import UsageLogRepository
from .base import AdminContext, store_guard

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "token"

# Columns an update may not null out; a null in the payload leaves them unchanged
NON_NULLABLE_FIELDS = (
    "name", "environment", "ip_allowlist", "is_super",
    "rate_limit_per_minute", "rate_limit_per_hour", "rate_limit_per_day",
)


class TokenUsecase:
    """Usecase for API token lifecycle operations.

    Every mutation writes its audit entry in the same transaction, so a
    failed audit write rolls the mutation back and is reported to the caller.
    """

    def __init__(self, session: AsyncSession, clock: Clock = utc_now):
        self.session = session
        self.clock = clock
        self.token_repo = TokenRepository(session)
        self.audit_repo = AuditLogRepository(session)
        self.usage_repo = UsageLogRepository(session)

    async def _audit(
        self,
        actor: AdminContext,
        action: str,
        token: Token,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
        description: str,
    ) -> None:
        await self.audit_repo.create(
            admin_id=actor.admin_id,
            action=action,
            resource_type=RESOURCE_TYPE,
            resource_id=str(token.id),
            old_values=old_values,
            new_values=new_values,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            description=description,
        )

    async def _get_or_404(self, token_id: UUID) -> Token:
        token = await self.token_repo.get_by_id(token_id)
        if not token:
            raise NotFoundException("Token not found")
        return token

    def _check_scope_policy(self, is_super: bool, filter_column: str | None, filter_value: str | None) -> None:
        """Reject tokens that would resolve to NO_RESTRICTION when the deployment forbids them."""
        filter_column = (filter_column or "").strip()
        filter_value = (filter_value or "").strip()
        if bool(filter_column) != bool(filter_value):
            raise ValidationException("filter_column and filter_value must be set together")

        candidate = SimpleNamespace(is_super=is_super, filter_column=filter_column, filter_value=filter_value)
        kind = resolve_scope(candidate).kind
        if kind is ScopeKind.NO_RESTRICTION and not settings.allow_unscoped_tokens:
            raise ValidationException("Token must be super or carry a filter_column/filter_value pair")
        if kind is ScopeKind.COLUMN_EQUALS and not is_known_scope_column(filter_column):
            logger.warning("Token scoped on non-allowlisted column %r; using it as a raw column", filter_column)

    async def create_token(self, actor: AdminContext, request: TokenCreateRequest) -> TokenCreateResponse:
        """Create a new API token.

        Args:
            actor: Acting admin
            request: Token creation request

        Returns:
            TokenCreateResponse with the full token (shown only once)

        Raises:
            ValidationException: If the scope fields are inconsistent
        """
        self._check_scope_policy(request.is_super, request.filter_column, request.filter_value)

        fields = request.model_dump(exclude={"rate_limit_per_minute", "rate_limit_per_hour", "rate_limit_per_day"})
        fields.update(
            rate_limit_per_minute=_default(request.rate_limit_per_minute, settings.default_rate_limit_per_minute),
            rate_limit_per_hour=_default(request.rate_limit_per_hour, settings.default_rate_limit_per_hour),
            rate_limit_per_day=_default(request.rate_limit_per_day, settings.default_rate_limit_per_day),
            created_by=actor.admin_id,
        )

        # Retry token generation if hash collision occurs (extremely rare)
        max_retries = 3
        token = None
        token_info = None

        for attempt in range(max_retries):
            token_info = create_token_info(request.environment)
            try:
                with store_guard("create token"):
                    async with self.session.begin():
                        token = await self.token_repo.create(
                            token_hash=token_info.token_hash,
                            token_prefix=token_info.token_prefix,
                            token_hint=token_info.token_hint,
                            **fields,
                        )
                        await self._audit(
                            actor, "create_token", token,
                            old_values=None,
                            new_values=token_snapshot(token),
                            description=f"Created token '{token.name}'",
                        )
                break
            except DuplicateRecordException:
                if attempt == max_retries - 1:
                    raise InternalServerException("Failed to generate unique token after multiple attempts")

        if not token or not token_info:
            raise InternalServerException("Failed to create token")

        logger.info("Token %s created by admin %s", token.id, actor.admin_id)
        return TokenCreateResponse(
            id=token.id,
            name=token.name,
            token=token_info.full_token,  # Only returned here
            token_hint=token.token_hint,
            environment=token.environment,
            expires_at=token.expires_at,
            is_super=token.is_super,
            vendor_name=token.vendor_name,
            filter_column=token.filter_column,
            filter_value=token.filter_value,
            rate_limit_per_minute=token.rate_limit_per_minute,
            rate_limit_per_hour=token.rate_limit_per_hour,
            rate_limit_per_day=token.rate_limit_per_day,
            created_at=token.created_at,
        )

    async def list_tokens(self) -> TokenListResponse:
        """List all tokens with masked secrets."""
        with store_guard("list tokens"):
            async with self.session.begin():
                tokens = await self.token_repo.list_all()

        items = [TokenResponse.model_validate(token) for token in tokens]
        return TokenListResponse(tokens=items, total=len(items))

    async def get_token(self, token_id: UUID) -> TokenResponse:
        """Get token details.

        Raises:
            NotFoundException: If token not found
        """
        with store_guard("load token"):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
        return TokenResponse.model_validate(token)

    async def update_token(self, actor: AdminContext, token_id: UUID, request: TokenUpdateRequest) -> TokenResponse:
        """Apply a partial update.

        Raises:
            NoFieldsProvidedException: If the request sets nothing
            NotFoundException: If token not found
            ValidationException: If the resulting scope is not allowed
        """
        fields = request.model_dump(exclude_unset=True)
        if not fields:
            raise NoFieldsProvidedException()

        with store_guard("update token"):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
                self._check_scope_policy(
                    fields.get("is_super", token.is_super) or False,
                    fields.get("filter_column", token.filter_column),
                    fields.get("filter_value", token.filter_value),
                )
                for name in NON_NULLABLE_FIELDS:
                    if name in fields and fields[name] is None:
                        fields.pop(name)

                old_values = token_snapshot(token)
                token = await self.token_repo.update(token, fields)
                await self._audit(
                    actor, "update_token", token,
                    old_values=old_values,
                    new_values=token_snapshot(token),
                    description=f"Updated token '{token.name}': {', '.join(sorted(fields))}",
                )

        logger.info("Token %s updated by admin %s", token.id, actor.admin_id)
        return TokenResponse.model_validate(token)

    async def set_token_active(self, actor: AdminContext, token_id: UUID, is_active: bool) -> TokenResponse:
        """Enable or disable a token.

        Raises:
            NotFoundException: If token not found
            ConflictException: If enabling a revoked token
        """
        action = "enable_token" if is_active else "disable_token"
        with store_guard(action.replace("_", " ")):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
                if is_active and token.revoked_at is not None:
                    raise ConflictException("Revoked tokens can not be enabled")

                old_values = token_snapshot(token)
                token = await self.token_repo.set_active(token, is_active)
                await self._audit(
                    actor, action, token,
                    old_values=old_values,
                    new_values=token_snapshot(token),
                    description=f"{'Enabled' if is_active else 'Disabled'} token '{token.name}'",
                )

        logger.info("Token %s %s by admin %s", token.id, "enabled" if is_active else "disabled", actor.admin_id)
        return TokenResponse.model_validate(token)

    async def revoke_token(self, actor: AdminContext, token_id: UUID, reason: str | None = None) -> TokenResponse:
        """Revoke a token. Revocation is terminal but keeps the row.

        Raises:
            NotFoundException: If token not found
            ConflictException: If the token is already revoked
        """
        with store_guard("revoke token"):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
                if token.revoked_at is not None:
                    raise ConflictException("Token is already revoked")

                old_values = token_snapshot(token)
                token = await self.token_repo.revoke(token, self.clock(), actor.admin_id, reason)
                await self._audit(
                    actor, "revoke_token", token,
                    old_values=old_values,
                    new_values=token_snapshot(token),
                    description=f"Revoked token '{token.name}'" + (f": {reason}" if reason else ""),
                )

        logger.info("Token %s revoked by admin %s", token.id, actor.admin_id)
        return TokenResponse.model_validate(token)

    async def delete_token(self, actor: AdminContext, token_id: UUID) -> None:
        """Physically delete a token.

        Raises:
            NotFoundException: If token not found
        """
        with store_guard("delete token"):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
                old_values = token_snapshot(token)
                await self._audit(
                    actor, "delete_token", token,
                    old_values=old_values,
                    new_values=None,
                    description=f"Deleted token '{token.name}'",
                )
                await self.token_repo.delete(token)

        logger.info("Token %s deleted by admin %s", token_id, actor.admin_id)

    async def get_token_logs(self, token_id: UUID, limit: int = 100, offset: int = 0) -> dict[str, Any]:
        """Get usage logs for a token.

        Raises:
            NotFoundException: If token not found
        """
        with store_guard("list usage logs"):
            async with self.session.begin():
                token = await self._get_or_404(token_id)
                logs, total = await self.usage_repo.list_by_token(token_id, limit=limit, offset=offset)

        return {
            "token_id": token.id,
            "token_name": token.name,
            "token": token.token_hint,
            "total_logs": total,
            "logs": [UsageLogResponse.model_validate(log).model_dump() for log in logs],
        }

    async def list_audit_logs(
        self,
        limit: int = 100,
        offset: int = 0,
        resource_id: str | None = None,
        action: str | None = None,
    ) -> dict[str, Any]:
        """List admin audit entries, newest first."""
        with store_guard("list audit logs"):
            async with self.session.begin():
                logs, total = await self.audit_repo.list_recent(
                    limit=limit, offset=offset, resource_id=resource_id, action=action
                )

        return {
            "total": total,
            "logs": [AuditLogResponse.model_validate(log).model_dump() for log in logs],
        }


def _default(value: int | None, fallback: int) -> int:
    return fallback if value is None else value
