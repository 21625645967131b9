"""Executes query builder statements against the ticket dataset."""
from typing import Any

from sqlalchemy import Select, Update
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import translate_db_errors


class DataRepository:
    """Thin executor; the statements carry all scoping."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count(self, stmt: Select) -> int:
        with translate_db_errors("count rows"):
            result = await self.session.execute(stmt)
            return result.scalar_one()

    async def fetch_all(self, stmt: Select) -> list[dict[str, Any]]:
        """Rows keyed by projection label."""
        with translate_db_errors("fetch rows"):
            result = await self.session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def fetch_one(self, stmt: Select) -> dict[str, Any] | None:
        with translate_db_errors("fetch row"):
            result = await self.session.execute(stmt)
            row = result.mappings().first()
            return dict(row) if row else None

    async def fetch_column(self, stmt: Select) -> list[Any]:
        with translate_db_errors("fetch values"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def execute_update(self, stmt: Update) -> int:
        """Run an UPDATE and return the affected row count."""
        with translate_db_errors("update row"):
            result = await self.session.execute(stmt)
            return result.rowcount
