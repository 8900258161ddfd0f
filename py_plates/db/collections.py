"""
Asynchronous keyed collections.

Every entity type (planets, plates, platelets, simulations) lives in its own
collection. The simulation core only relies on single-key atomicity; there are
no cross-key transactions. Synchronous backends simply resolve immediately.
"""

import copy
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
)

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import StorageError
from .connection import Database
from .models import INDEXED_FIELDS, RecordRow

logger = structlog.get_logger()

R = TypeVar("R")
Updater = Callable[[R], Optional[R]]


class Collection(ABC, Generic[R]):
    """Abstract async keyed collection of one record type."""

    def __init__(self, name: str, record_type: Type[R]):
        self.name = name
        self.record_type = record_type

    @abstractmethod
    async def get(self, record_id: str) -> Optional[R]:
        """Return a copy of the record, or ``None`` if it does not exist."""

    @abstractmethod
    async def set(self, record_id: str, record: R) -> None:
        """Insert or replace a record."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record; returns whether it existed."""

    @abstractmethod
    async def delete_many(self, record_ids: Iterable[str]) -> int:
        """Delete several records; returns how many existed."""

    @abstractmethod
    def find(self, field: str, value: Any) -> AsyncIterator[Tuple[str, R]]:
        """Iterate ``(id, record)`` pairs whose ``field`` equals ``value``."""

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        pass

    async def has(self, record_id: str) -> bool:
        return await self.get(record_id) is not None

    async def mutate(self, record_id: str, updater: Updater) -> Optional[R]:
        """
        Apply ``updater`` to the stored record and write the result back.

        The updater may modify the record in place and return ``None``, or
        return a replacement. Returns the stored record, or ``None`` if the id
        does not exist (the updater is not called).
        """
        record = await self.get(record_id)
        if record is None:
            return None
        updated = updater(record)
        if updated is None:
            updated = record
        await self.set(record_id, updated)
        return updated

    async def set_many(self, records: Sequence[Tuple[str, R]]) -> None:
        for record_id, record in records:
            await self.set(record_id, record)

    async def values(self, field: str, value: Any) -> List[R]:
        """Collect the records of ``find`` into a list."""
        return [record async for _, record in self.find(field, value)]


class MemoryCollection(Collection[R]):
    """Dict-backed collection with secondary indexes on declared fields."""

    def __init__(self, name: str, record_type: Type[R], index_fields: Sequence[str] = ()):
        super().__init__(name, record_type)
        self.index_fields = tuple(index_fields)
        self._data: Dict[str, R] = {}
        self._indexes: Dict[str, Dict[Any, Set[str]]] = {
            f: defaultdict(set) for f in self.index_fields
        }

    def _index(self, record_id: str, record: R):
        for field_name, index in self._indexes.items():
            index[getattr(record, field_name, None)].add(record_id)

    def _unindex(self, record_id: str, record: R):
        for field_name, index in self._indexes.items():
            key = getattr(record, field_name, None)
            ids = index.get(key)
            if ids is not None:
                ids.discard(record_id)
                if not ids:
                    del index[key]

    async def get(self, record_id: str) -> Optional[R]:
        record = self._data.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def has(self, record_id: str) -> bool:
        return record_id in self._data

    async def set(self, record_id: str, record: R) -> None:
        previous = self._data.get(record_id)
        if previous is not None:
            self._unindex(record_id, previous)
        stored = copy.deepcopy(record)
        self._data[record_id] = stored
        self._index(record_id, stored)

    async def delete(self, record_id: str) -> bool:
        record = self._data.pop(record_id, None)
        if record is None:
            return False
        self._unindex(record_id, record)
        return True

    async def delete_many(self, record_ids: Iterable[str]) -> int:
        deleted = 0
        for record_id in record_ids:
            if await self.delete(record_id):
                deleted += 1
        return deleted

    async def find(self, field: str, value: Any) -> AsyncIterator[Tuple[str, R]]:
        if field in self._indexes:
            ids = sorted(self._indexes[field].get(value, ()))
        else:
            ids = sorted(
                record_id for record_id, record in self._data.items()
                if getattr(record, field, None) == value
            )
        # Snapshot the ids so callers may write while iterating
        for record_id in ids:
            record = self._data.get(record_id)
            if record is not None:
                yield record_id, copy.deepcopy(record)

    async def count(self) -> int:
        return len(self._data)

    async def keys(self) -> List[str]:
        return list(self._data)


class SQLCollection(Collection[R]):
    """
    SQLAlchemy-backed collection.

    All collections share the ``records`` table, keyed by (collection, id).
    Records are stored as their ``to_dict`` JSON payload; ``planet_id``,
    ``plate_id``, ``cell_id`` and ``sector`` are copied to indexed columns.
    """

    def __init__(self, name: str, record_type: Type[R], database: Database):
        super().__init__(name, record_type)
        self.database = database

    def _to_row(self, record_id: str, record: R) -> RecordRow:
        payload = record.to_dict()
        columns = {f: payload.get(f) for f in INDEXED_FIELDS}
        return RecordRow(collection=self.name, id=record_id, payload=payload, **columns)

    def _from_row(self, row: RecordRow) -> R:
        return self.record_type.from_dict(row.payload)

    def _query(self, session):
        return session.query(RecordRow).filter(RecordRow.collection == self.name)

    def _fail(self, action: str, error: SQLAlchemyError, **context):
        logger.error("Storage operation failed", collection=self.name,
                     action=action, error=str(error), **context)
        raise StorageError(f"{self.name}: {action} failed: {error}") from error

    async def get(self, record_id: str) -> Optional[R]:
        try:
            with self.database.get_session() as session:
                row = self._query(session).filter(RecordRow.id == record_id).first()
                return self._from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            self._fail("get", e, id=record_id)

    async def set(self, record_id: str, record: R) -> None:
        try:
            with self.database.get_session() as session:
                session.merge(self._to_row(record_id, record))
        except SQLAlchemyError as e:
            self._fail("set", e, id=record_id)

    async def set_many(self, records: Sequence[Tuple[str, R]]) -> None:
        try:
            with self.database.get_session() as session:
                for record_id, record in records:
                    session.merge(self._to_row(record_id, record))
        except SQLAlchemyError as e:
            self._fail("set_many", e, count=len(records))

    async def delete(self, record_id: str) -> bool:
        return await self.delete_many([record_id]) == 1

    async def delete_many(self, record_ids: Iterable[str]) -> int:
        ids = list(record_ids)
        if not ids:
            return 0
        try:
            with self.database.get_session() as session:
                return self._query(session).filter(RecordRow.id.in_(ids)).delete(
                    synchronize_session=False
                )
        except SQLAlchemyError as e:
            self._fail("delete_many", e, count=len(ids))

    async def find(self, field: str, value: Any) -> AsyncIterator[Tuple[str, R]]:
        try:
            with self.database.get_session() as session:
                query = self._query(session)
                if field in INDEXED_FIELDS:
                    query = query.filter(getattr(RecordRow, field) == value)
                rows = query.order_by(RecordRow.id).all()
                records = [(row.id, self._from_row(row)) for row in rows]
        except SQLAlchemyError as e:
            self._fail("find", e, field=field)

        for record_id, record in records:
            if field in INDEXED_FIELDS or getattr(record, field, None) == value:
                yield record_id, record

    async def count(self) -> int:
        try:
            with self.database.get_session() as session:
                return self._query(session).count()
        except SQLAlchemyError as e:
            self._fail("count", e)

    async def keys(self) -> List[str]:
        try:
            with self.database.get_session() as session:
                return [row.id for row in self._query(session).with_entities(RecordRow.id)]
        except SQLAlchemyError as e:
            self._fail("keys", e)
