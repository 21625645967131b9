"""Scoped reads and writes over the ticket dataset."""
import asyncio
import logging
import time
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gateway.common.exceptions import NoFieldsProvidedException, NotFoundException, ScopeViolationException
from gateway.domain.query_builder import (
    ListParams,
    NoUpdatableFieldsError,
    QueryBuilder,
    ScopeFieldChangeError,
)
from gateway.domain.schemas import DataRow, MetadataResponse
from gateway.domain.scope import Scope
from gateway.repository.data_repository import DataRepository
from .base import store_guard

logger = logging.getLogger(__name__)


class MetadataCache:
    """Distinct filter values, refreshed at most once per TTL.

    The lock keeps concurrent misses from all hitting the store.
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._lock = asyncio.Lock()
        self._value: MetadataResponse | None = None
        self._loaded_at = 0.0

    def _fresh(self) -> bool:
        return self._value is not None and time.monotonic() - self._loaded_at < self.ttl_seconds

    async def get_or_refresh(self, session: AsyncSession, builder: QueryBuilder) -> MetadataResponse:
        if self._fresh():
            return self._value

        async with self._lock:
            if self._fresh():
                return self._value

            repo = DataRepository(session)
            with store_guard("load metadata"):
                async with session.begin():
                    values = {
                        name: [v for v in await repo.fetch_column(stmt) if v != ""]
                        for name, stmt in builder.build_metadata_queries().items()
                    }
            self._value = MetadataResponse(**values)
            self._loaded_at = time.monotonic()
            return self._value

    def invalidate(self) -> None:
        self._value = None


class DataUsecase:
    """Runs query builder statements for one request."""

    def __init__(self, session: AsyncSession, builder: QueryBuilder):
        self.session = session
        self.builder = builder
        self.data_repo = DataRepository(session)

    async def list_rows(self, scope: Scope, params: ListParams) -> dict[str, Any]:
        """List rows visible to the scope.

        Returns:
            Dict with items, total, page and page_size
        """
        query = self.builder.build_list_query(scope, params)
        with store_guard("list rows"):
            async with self.session.begin():
                total = await self.data_repo.count(query.count_stmt)
                rows = await self.data_repo.fetch_all(query.data_stmt)

        return {
            "items": [DataRow.model_validate(row).model_dump() for row in rows],
            "total": total,
            "page": query.page,
            "page_size": query.limit,
        }

    async def get_row(self, scope: Scope, terminal_id: str) -> DataRow:
        """Get one row.

        Raises:
            NotFoundException: If the row does not exist or is outside the scope
        """
        stmt = self.builder.build_get_query(scope, terminal_id)
        with store_guard("get row"):
            async with self.session.begin():
                row = await self.data_repo.fetch_one(stmt)

        if row is None:
            raise NotFoundException("Record not found")
        return DataRow.model_validate(row)

    async def update_row(self, scope: Scope, terminal_id: str, fields: dict[str, Any]) -> DataRow:
        """Update one row inside the scope and return it.

        Raises:
            NoFieldsProvidedException: If no updatable field was sent
            ScopeViolationException: If nothing matched under a restricted scope,
                or the update would move the row out of it
            NotFoundException: If nothing matched otherwise
        """
        try:
            stmt = self.builder.build_update_query(scope, terminal_id, fields)
        except NoUpdatableFieldsError:
            raise NoFieldsProvidedException()
        except ScopeFieldChangeError:
            logger.warning(
                "Scoped update of %s rejected: %s must stay %s", terminal_id, scope.column_name, scope.value
            )
            raise ScopeViolationException("Update would move the record outside the token scope")

        with store_guard("update row"):
            async with self.session.begin():
                affected = await self.data_repo.execute_update(stmt)
                if affected == 0:
                    if scope.is_restricted:
                        logger.warning(
                            "Scoped update of %s rejected (%s=%s)", terminal_id, scope.column_name, scope.value
                        )
                        raise ScopeViolationException()
                    raise NotFoundException("Record not found")
                row = await self.data_repo.fetch_one(self.builder.build_get_query(scope, terminal_id))
                if row is None:
                    # Raising inside the transaction rolls the write back
                    raise ScopeViolationException()

        return DataRow.model_validate(row)
