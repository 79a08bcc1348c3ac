"""
Repositories over projection tables.

Writes are single statements so the projection applier and the owning
service's own write path can both touch a row without coordinating:
upserts clear the tombstone, soft deletes only stamp rows that are active.
"""

import abc
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Type

from sqlalchemy import Table, select, update
from sqlalchemy.dialects import postgresql, sqlite

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_statement(dialect_name: str, table: Table, values: Dict[str, Any], key: Sequence[str]):
    """INSERT ... ON CONFLICT (key) DO UPDATE for the backends we run on."""
    insert = _DIALECT_INSERTS.get(dialect_name)
    if insert is None:
        raise NotImplementedError(f"No upsert support for dialect {dialect_name}")
    stmt = insert(table).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=list(key),
        set_={name: stmt.excluded[name] for name in values if name not in key},
    )


class AbstractProjectionRepository(abc.ABC):

    def upsert(self, **values) -> None:
        """Insert or refresh a row and clear its tombstone."""
        values["deleted_at"] = None
        self._upsert(values)

    def soft_delete(self, row_id: str, deleted_at: datetime) -> bool:
        """Tombstone one row; False when it is unknown or already deleted."""
        return bool(self._update({"id": row_id}, {"deleted_at": deleted_at}))

    def soft_delete_where(self, deleted_at: datetime, **criteria) -> List[Any]:
        """Tombstone every active row matching criteria and return the rows changed."""
        return self._update(criteria, {"deleted_at": deleted_at})

    def update_active(self, row_id: str, **values):
        """Change an active row. Returns the updated row, or None when it is unknown or deleted."""
        rows = self._update({"id": row_id}, values)
        return rows[0] if rows else None

    def get(self, row_id: str):
        return self._get(row_id)

    def list_active(self, **criteria) -> List[Any]:
        return self._list_active(criteria)

    @abc.abstractmethod
    def _upsert(self, values: Dict[str, Any]):
        raise NotImplementedError

    @abc.abstractmethod
    def _update(self, criteria: Dict[str, Any], values: Dict[str, Any]) -> List[Any]:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, row_id: str):
        raise NotImplementedError

    @abc.abstractmethod
    def _list_active(self, criteria: Dict[str, Any]) -> List[Any]:
        raise NotImplementedError


class SqlAlchemyProjectionRepository(AbstractProjectionRepository):
    def __init__(self, session, table: Table, model: Type, key: Sequence[str] = ("id",)):
        self.session = session
        self.table = table
        self.model = model
        self.key = tuple(key)

    def _hydrate(self, row) -> Any:
        return self.model(**dict(row))

    def _criteria(self, criteria: Dict[str, Any]):
        return [self.table.c[name] == value for name, value in criteria.items()]

    def _upsert(self, values):
        dialect = self.session.get_bind().dialect.name
        self.session.execute(upsert_statement(dialect, self.table, values, self.key))

    def _update(self, criteria, values):
        stmt = (
            update(self.table)
            .where(*self._criteria(criteria))
            .where(self.table.c.deleted_at.is_(None))
            .values(**values)
            .returning(*self.table.c)
        )
        rows = self.session.execute(stmt).mappings().all()
        return [self._hydrate(row) for row in rows]

    def _get(self, row_id) -> Optional[Any]:
        row = self.session.execute(
            select(self.table).where(self.table.c.id == row_id)
        ).mappings().first()
        return self._hydrate(row) if row else None

    def _list_active(self, criteria):
        rows = self.session.execute(
            select(self.table)
            .where(*self._criteria(criteria))
            .where(self.table.c.deleted_at.is_(None))
        ).mappings().all()
        return [self._hydrate(row) for row in rows]
