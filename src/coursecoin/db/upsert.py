"""Dialect-aware ``INSERT ... ON CONFLICT DO NOTHING``."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def insert_ignore(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    conflict_columns: Sequence[str],
) -> bool:
    """Insert a row unless one already exists on ``conflict_columns``.

    Returns True if this call inserted the row. The unique constraint is the
    only guard, so concurrent callers cannot create duplicates.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        msg = f"Unsupported database dialect for upserts: {dialect}"
        raise RuntimeError(msg)

    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = await db.execute(stmt)
    return result.rowcount == 1
