"""
Data store client contract and the bundled in-memory implementation.

Any persistent backend (a hosted Postgres, a REST table API) is plugged in
by implementing ``DataStoreClient``. Failures are raised as exceptions,
never returned as error fields.
"""

# Standard library imports
import copy
import itertools
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

# Local imports
from pixolink.core.exceptions import DataStoreError
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]
Rows = Union[Row, List[Row]]


@runtime_checkable
class DataStoreClient(Protocol):
    """Asynchronous table and blob storage used by the connectors and sync engines."""

    async def select(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Row]:
        ...

    async def insert(self, table: str, rows: Rows) -> List[Row]:
        ...

    async def upsert(self, table: str, rows: Rows, id_field: str = 'id') -> List[Row]:
        ...

    async def update(self, table: str, record_id: Any, changes: Mapping[str, Any]) -> List[Row]:
        ...

    async def delete(self, table: str, record_id: Any) -> None:
        ...

    async def upload(self, bucket: str, path: str, blob: bytes) -> Dict[str, str]:
        ...


def _as_rows(rows: Rows) -> List[Row]:
    return [rows] if isinstance(rows, Mapping) else list(rows)


class InMemoryDataStore:
    """
    Dictionary-backed DataStoreClient.

    Tables are created on first write. Rows without an ``id`` get an
    auto-incremented one on insert. Uploaded blobs are kept per bucket.
    """

    def __init__(self, tables: Optional[Mapping[str, List[Row]]] = None, base_url: str = "memory://storage"):
        self._tables: Dict[str, Dict[Any, Row]] = {}
        self._buckets: Dict[str, Dict[str, bytes]] = {}
        self._ids = itertools.count(1)
        self.base_url = base_url
        for table, rows in (tables or {}).items():
            for row in rows:
                self._store_row(table, dict(row))

    def _table(self, table: str) -> Dict[Any, Row]:
        return self._tables.setdefault(table, {})

    def _store_row(self, table: str, row: Row, id_field: str = 'id') -> Row:
        if row.get(id_field) is None:
            row[id_field] = next(self._ids)
        self._table(table)[row[id_field]] = row
        return copy.deepcopy(row)

    async def select(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Row]:
        rows = self._table(table).values()
        filters = filters or {}
        return [
            copy.deepcopy(row) for row in rows
            if all(row.get(key) == value for key, value in filters.items())
        ]

    async def insert(self, table: str, rows: Rows) -> List[Row]:
        stored = []
        for row in _as_rows(rows):
            row = dict(row)
            if row.get('id') is not None and row['id'] in self._table(table):
                raise DataStoreError(f"Duplicate key {row['id']} in {table}")
            stored.append(self._store_row(table, row))
        return stored

    async def upsert(self, table: str, rows: Rows, id_field: str = 'id') -> List[Row]:
        stored = []
        for row in _as_rows(rows):
            row = dict(row)
            existing = self._table(table).get(row.get(id_field))
            if existing is not None:
                existing.update(row)
                stored.append(copy.deepcopy(existing))
            else:
                stored.append(self._store_row(table, row, id_field))
        return stored

    async def update(self, table: str, record_id: Any, changes: Mapping[str, Any]) -> List[Row]:
        existing = self._table(table).get(record_id)
        if existing is None:
            return []
        existing.update(changes)
        return [copy.deepcopy(existing)]

    async def delete(self, table: str, record_id: Any) -> None:
        self._table(table).pop(record_id, None)

    async def upload(self, bucket: str, path: str, blob: bytes) -> Dict[str, str]:
        self._buckets.setdefault(bucket, {})[path] = bytes(blob)
        logger.debug(f"Stored {len(blob)} bytes at {bucket}/{path}")
        return {'path': path, 'url': f"{self.base_url}/{bucket}/{path}"}

    def get_blob(self, bucket: str, path: str) -> Optional[bytes]:
        return self._buckets.get(bucket, {}).get(path)
