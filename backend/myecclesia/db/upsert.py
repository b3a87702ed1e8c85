"""
INSERT ... ON CONFLICT DO UPDATE for the dialects we run on.
"""

from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.core.exceptions import ConfigurationError

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_upsert(
    db: AsyncSession,
    model: Any,
    values: dict,
    conflict_columns: Iterable[str],
):
    """
    Insert `values`, or overwrite the same columns on the row that already
    holds the conflict key.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise ConfigurationError(f"upsert is not supported on {dialect}")

    conflict_columns = list(conflict_columns)
    stmt = insert(model).values(**values)
    overwrite = {
        name: stmt.excluded[name]
        for name in values
        if name not in conflict_columns
    }
    if "updated_at" in model.__table__.c:
        overwrite["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=conflict_columns, set_=overwrite)
