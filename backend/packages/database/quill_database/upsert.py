"""
Dialect-aware INSERT ... ON CONFLICT support.

PostgreSQL and SQLite both implement ``on_conflict_do_update`` with the
same signature; this picks the construct matching the session's bind.
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(session: AsyncSession, model: Any) -> Any:
    """
    Build a dialect-specific INSERT for ``model`` that supports upserts.

    Args:
        session: Session whose bind decides the dialect.
        model: Mapped class to insert into.

    Returns:
        A PostgreSQL or SQLite ``Insert`` construct.

    Raises:
        NotImplementedError: For dialects without ON CONFLICT support.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")
