"""Token repository for database operations."""
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models.token import Token
from gateway.models.rate_limit import RateLimitCounter
from .exceptions import translate_db_errors


class TokenRepository:
    """Repository for Token model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields: Any) -> Token:
        """Create a new token.

        Args:
            **fields: Token column values, including token_hash, token_prefix
                and token_hint

        Returns:
            Created Token object

        Raises:
            DuplicateRecordException: If token hash already exists
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        with translate_db_errors("create token", duplicate_message="Token hash collision detected"):
            token = Token(**fields)
            self.session.add(token)
            await self.session.flush()
            await self.session.refresh(token)
            return token

    async def get_by_id(self, token_id: UUID) -> Token | None:
        """Get token by ID.

        Args:
            token_id: Token UUID

        Returns:
            Token object if found, None otherwise
        """
        with translate_db_errors("load token"):
            result = await self.session.execute(
                select(Token).where(Token.id == token_id)
            )
            return result.scalar_one_or_none()

    async def get_by_hash(self, token_hash: str) -> Token | None:
        """Get token by the SHA-256 hash of its secret.

        Args:
            token_hash: Token hash

        Returns:
            Token object if found, None otherwise
        """
        with translate_db_errors("look up token"):
            result = await self.session.execute(
                select(Token).where(Token.token_hash == token_hash)
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> list[Token]:
        """List every token, newest first."""
        with translate_db_errors("list tokens"):
            result = await self.session.execute(
                select(Token).order_by(Token.created_at.desc())
            )
            return list(result.scalars().all())

    async def update(self, token: Token, fields: dict[str, Any]) -> Token:
        """Apply a partial update to a loaded token.

        Args:
            token: Token object
            fields: Column values to set

        Returns:
            Updated Token object
        """
        with translate_db_errors("update token"):
            for name, value in fields.items():
                setattr(token, name, value)
            await self.session.flush()
            await self.session.refresh(token)
            return token

    async def set_active(self, token: Token, is_active: bool) -> Token:
        """Enable or disable a token."""
        return await self.update(token, {"is_active": is_active})

    async def revoke(
        self,
        token: Token,
        revoked_at: datetime,
        revoked_by: UUID | None,
        reason: str | None,
    ) -> Token:
        """Revoke a token. Revocation also clears the active flag.

        Args:
            token: Token object
            revoked_at: Revocation instant
            revoked_by: Admin UUID
            reason: Free text reason

        Returns:
            Revoked Token object
        """
        return await self.update(token, {
            "is_active": False,
            "revoked_at": revoked_at,
            "revoked_by": revoked_by,
            "revoked_reason": reason,
        })

    async def delete(self, token: Token) -> None:
        """Physically delete a token together with its quota counters.

        Usage logs keep the token id as history.
        """
        with translate_db_errors("delete token"):
            await self.session.execute(
                delete(RateLimitCounter).where(RateLimitCounter.token_id == token.id)
            )
            await self.session.delete(token)
            await self.session.flush()

    async def record_usage(
        self,
        token_id: UUID,
        used_at: datetime,
        ip_address: str | None,
        endpoint: str,
    ) -> None:
        """Bump usage statistics with a single UPDATE.

        Args:
            token_id: Token UUID
            used_at: Request instant
            ip_address: Client IP
            endpoint: Request path
        """
        with translate_db_errors("record token usage"):
            await self.session.execute(
                update(Token)
                .where(Token.id == token_id)
                .values(
                    last_used_at=used_at,
                    last_used_ip=ip_address,
                    last_used_endpoint=endpoint,
                    total_requests=Token.total_requests + 1,
                    updated_at=Token.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
