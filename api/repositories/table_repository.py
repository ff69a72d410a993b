"""Generic table repository backing the CRUD mixins.

Works on any table registered on ``Base.metadata`` using SQLAlchemy Core, so
generic services only need a table name and a primary-key field. Rows come
back as plain dicts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import Column, Table, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import Base
from repositories.utils import log_slow_query


def get_table(name: str) -> Table:
    """Look up a table registered on Base.metadata by name."""
    # Import models to ensure they're registered with Base.metadata
    import models  # noqa: F401

    try:
        return Base.metadata.tables[name]
    except KeyError:
        raise LookupError(f"Table '{name}' is not registered on Base.metadata") from None


class TableRepository:
    """Repository for CRUD operations on a single table."""

    def __init__(self, db: AsyncSession, table: Table, pk_field: str = "id"):
        if pk_field not in table.c:
            raise LookupError(f"Table '{table.name}' has no column '{pk_field}'")
        self.db = db
        self.table = table
        self.pk_field = pk_field

    @property
    def pk_column(self) -> Column:
        return self.table.c[self.pk_field]

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.table.columns]

    def _columns(self, names: Iterable[str] | None) -> list[Column]:
        if not names:
            return list(self.table.columns)
        return [self.table.c[name] for name in names]

    @log_slow_query("table.list")
    async def list(
        self,
        *,
        limit: int,
        offset: int = 0,
        columns: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Get a page of rows ordered by primary key."""
        stmt = (
            select(*self._columns(columns))
            .order_by(self.pk_column)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @log_slow_query("table.count")
    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(self.table))
        return result.scalar_one()

    @log_slow_query("table.get")
    async def get(
        self, pk: Any, columns: Iterable[str] | None = None
    ) -> dict[str, Any] | None:
        """Get a row by primary key."""
        result = await self.db.execute(
            select(*self._columns(columns)).where(self.pk_column == pk)
        )
        row = result.mappings().one_or_none()
        return dict(row) if row is not None else None

    @log_slow_query("table.create")
    async def create(
        self, values: Mapping[str, Any], columns: Iterable[str] | None = None
    ) -> dict[str, Any]:
        """Insert a row and return it as stored (defaults included)."""
        result = await self.db.execute(insert(self.table).values(**values))
        pk = values.get(self.pk_field)
        if pk is None:
            pk = result.inserted_primary_key[0]
        created = await self.get(pk, columns)
        if created is None:
            raise LookupError(f"Row inserted into '{self.table.name}' could not be read back")
        return created

    @log_slow_query("table.update")
    async def update(
        self, pk: Any, values: Mapping[str, Any], columns: Iterable[str] | None = None
    ) -> dict[str, Any] | None:
        """Update a row. Returns None if no row matched."""
        result = await self.db.execute(
            update(self.table).where(self.pk_column == pk).values(**values)
        )
        if result.rowcount == 0:
            return None
        new_pk = values.get(self.pk_field, pk)
        return await self.get(new_pk, columns)

    @log_slow_query("table.delete")
    async def delete(self, pk: Any) -> bool:
        """Delete a row. Returns False if no row matched."""
        result = await self.db.execute(delete(self.table).where(self.pk_column == pk))
        return result.rowcount > 0
