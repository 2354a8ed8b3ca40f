"""
Document store abstraction with an in-memory implementation and a
SQLAlchemy-backed one.

Documents are JSON objects addressed by slash-separated paths with an even
number of segments (`classes/{class_id}/members/{user_id}`); the segments
before the last one name the collection. Writes go through transactions so
related documents (a member's class score, their lifetime total and the
history log) always change together.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    ContextManager,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
)

from sqlalchemy import JSON, Column, Float, Integer, String, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from engage.errors import ConflictError, InvalidInputError, NotFoundError
from engage.feed import ChangeFeed, InMemoryChangeFeed

logger = logging.getLogger(__name__)

T = TypeVar("T")

Filter = Tuple[str, str, Any]
Listener = Callable[[str], None]


class DocumentNotFoundError(NotFoundError):
    pass


class TransactionConflictError(ConflictError):
    pass


@dataclass(frozen=True)
class Increment:
    amount: int | float


class ArrayUnion:
    def __init__(self, *values: Any):
        self.values = list(values)


class ArrayRemove:
    def __init__(self, *values: Any):
        self.values = list(values)


class _DeleteField:
    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()

_MISSING = object()


@dataclass
class Document:
    id: str
    path: str
    data: dict


def split_path(path: str) -> tuple[str, str]:
    """Returns (collection, doc_id) for a document path."""
    parts = path.strip("/").split("/")
    if len(parts) < 2 or len(parts) % 2 != 0 or not all(parts):
        raise InvalidInputError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


# Field helpers


def _get_field(data: dict, dotted: str) -> Any:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _resolve(current: Any, value: Any) -> Any:
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        return base + value.amount
    if isinstance(value, ArrayUnion):
        result = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in result:
                result.append(copy.deepcopy(item))
        return result
    if isinstance(value, ArrayRemove):
        if not isinstance(current, list):
            return []
        return [item for item in current if item not in value.values]
    if isinstance(value, dict):
        return {
            key: _resolve(_MISSING, item)
            for key, item in value.items()
            if item is not DELETE_FIELD
        }
    return copy.deepcopy(value)


def _set_field(data: dict, dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    if value is DELETE_FIELD:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = _resolve(node.get(parts[-1], _MISSING), value)


def apply_update(data: dict, changes: dict) -> dict:
    """Applies `changes` with dotted field paths, like a Firestore update."""
    result = copy.deepcopy(data)
    for key, value in changes.items():
        _set_field(result, key, value)
    return result


def apply_merge(data: dict, changes: dict) -> dict:
    """Deep-merges nested maps, like a Firestore set with merge."""
    result = copy.deepcopy(data)
    for key, value in changes.items():
        if value is DELETE_FIELD:
            result.pop(key, None)
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = apply_merge(result[key], value)
        else:
            result[key] = _resolve(result.get(key, _MISSING), value)
    return result


def _compare(op: str, actual: Any, expected: Any) -> bool:
    try:
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
        if op == "in":
            return actual in expected
        if op == "array_contains":
            return isinstance(actual, list) and expected in actual
    except TypeError:
        return False
    raise InvalidInputError(f"Unsupported filter operator: {op}")


def matches(data: dict, filters: Sequence[Filter]) -> bool:
    for field_path, op, expected in filters:
        actual = _get_field(data, field_path)
        if actual is _MISSING:
            return False
        if actual is None and op not in ("==", "!=", "in"):
            return False
        if not _compare(op, actual, expected):
            return False
    return True


def run_query(
    documents: List[Document],
    where: Sequence[Filter] = (),
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> List[Document]:
    results = [doc for doc in documents if matches(doc.data, where)]
    if order_by:
        # Documents without the ordering field are left out, as Firestore does.
        results = [
            doc for doc in results if _get_field(doc.data, order_by) not in (_MISSING, None)
        ]
        results.sort(key=lambda doc: _get_field(doc.data, order_by), reverse=descending)
    else:
        results.sort(key=lambda doc: doc.path)
    if limit is not None:
        results = results[:limit]
    return results


class DocumentStore(Protocol):
    """Interface for document access."""

    def get(self, path: str) -> Optional[dict]:
        ...

    def query(
        self,
        collection: str,
        where: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        ...

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        ...

    def update(self, path: str, changes: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def add(self, collection: str, data: dict) -> str:
        ...

    def transaction(self) -> ContextManager["Transaction"]:
        ...

    def run_transaction(self, fn: Callable[["Transaction"], T]) -> T:
        ...

    def watch(self, path: str, listener: Listener) -> Callable[[], None]:
        ...


class Transaction:
    """Buffers writes and applies them atomically on commit.

    Reads see the transaction's own writes. Every read records the version
    it saw so optimistic stores can reject the commit when another writer
    got there first.
    """

    def __init__(self, store: "_BaseDocumentStore"):
        self._store = store
        self.pending: Dict[str, Optional[dict]] = {}
        self.read_versions: Dict[str, int] = {}

    def _current(self, path: str) -> Optional[dict]:
        if path in self.pending:
            return self.pending[path]
        version, data = self._store._read(path)
        self.read_versions.setdefault(path, version)
        return data

    def get(self, path: str) -> Optional[dict]:
        split_path(path)
        data = self._current(path)
        return copy.deepcopy(data) if data is not None else None

    def exists(self, path: str) -> bool:
        return self._current(path) is not None

    def query(
        self,
        collection: str,
        where: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        collection = collection.strip("/")
        documents: Dict[str, Document] = {}
        for version, document in self._store._scan(collection):
            self.read_versions.setdefault(document.path, version)
            documents[document.path] = document
        for path, data in self.pending.items():
            if split_path(path)[0] != collection:
                continue
            if data is None:
                documents.pop(path, None)
            else:
                documents[path] = Document(split_path(path)[1], path, copy.deepcopy(data))
        return run_query(list(documents.values()), where, order_by, descending, limit)

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        split_path(path)
        current = self._current(path) if merge else None
        if merge and current is not None:
            self.pending[path] = apply_merge(current, data)
        else:
            self.pending[path] = _resolve(_MISSING, data)

    def create(self, path: str, data: dict) -> None:
        if self.exists(path):
            raise ConflictError(f"Document already exists: {path}")
        self.set(path, data)

    def update(self, path: str, changes: dict) -> None:
        current = self._current(path)
        if current is None:
            raise DocumentNotFoundError(f"No document to update: {path}")
        self.pending[path] = apply_update(current, changes)

    def delete(self, path: str) -> None:
        split_path(path)
        self.pending[path] = None

    def add(self, collection: str, data: dict) -> str:
        doc_id = new_document_id()
        self.set(f"{collection.strip('/')}/{doc_id}", data)
        return doc_id


class _BaseDocumentStore:
    """Shared plumbing: simple writes are single-operation transactions."""

    def __init__(self, feed: Optional[ChangeFeed] = None, max_attempts: int = 5):
        self.feed: ChangeFeed = feed or InMemoryChangeFeed()
        self.max_attempts = max_attempts

    # Implementations provide these.

    def _read(self, path: str) -> tuple[int, Optional[dict]]:
        raise NotImplementedError

    def _scan(self, collection: str) -> List[tuple[int, Document]]:
        raise NotImplementedError

    def _commit(self, txn: Transaction) -> None:
        raise NotImplementedError

    @contextmanager
    def _scope(self) -> Iterator[None]:
        yield

    # Public API

    def get(self, path: str) -> Optional[dict]:
        split_path(path)
        _, data = self._read(path)
        return data

    def query(
        self,
        collection: str,
        where: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        documents = [doc for _, doc in self._scan(collection.strip("/"))]
        return run_query(documents, where, order_by, descending, limit)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        txn = Transaction(self)
        with self._scope():
            yield txn
            if txn.pending:
                self._commit(txn)
        self._notify(list(txn.pending))

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """Runs `fn` in a transaction, retrying when a concurrent write wins."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.transaction() as txn:
                    return fn(txn)
            except TransactionConflictError:
                if attempt == self.max_attempts:
                    logger.error("Transaction failed after %d attempts", attempt)
                    raise
                logger.warning("Transaction conflict, retrying (attempt %d)", attempt)
        raise TransactionConflictError("Transaction did not run")

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        with self.transaction() as txn:
            txn.set(path, data, merge=merge)

    def update(self, path: str, changes: dict) -> None:
        with self.transaction() as txn:
            txn.update(path, changes)

    def delete(self, path: str) -> None:
        with self.transaction() as txn:
            txn.delete(path)

    def add(self, collection: str, data: dict) -> str:
        with self.transaction() as txn:
            return txn.add(collection, data)

    def watch(self, path: str, listener: Listener) -> Callable[[], None]:
        """Calls `listener(changed_path)` now and after every change to `path`.

        `path` may name a document or a collection.
        """
        topic = path.strip("/")
        unsubscribe = self.feed.subscribe(
            topic, lambda _topic, message: listener(message.get("path", topic))
        )
        listener(topic)
        return unsubscribe

    def _notify(self, paths: List[str]) -> None:
        topics: Dict[str, str] = {}
        for path in paths:
            topics.setdefault(path, path)
            topics.setdefault(split_path(path)[0], path)
        for topic, path in topics.items():
            self.feed.publish(topic, {"path": path})


class InMemoryDocumentStore(_BaseDocumentStore):
    """Simple in-memory document store for development and tests.

    Transactions are serialised by a re-entrant lock, so they never conflict.
    """

    def __init__(self, feed: Optional[ChangeFeed] = None, max_attempts: int = 5):
        super().__init__(feed, max_attempts)
        self._lock = threading.RLock()
        self.collections: Dict[str, Dict[str, tuple[int, dict]]] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()

    @contextmanager
    def _scope(self) -> Iterator[None]:
        with self._lock:
            yield

    def _read(self, path: str) -> tuple[int, Optional[dict]]:
        collection, doc_id = split_path(path)
        with self._lock:
            entry = self.collections.get(collection, {}).get(doc_id)
            if entry is None:
                return 0, None
            return entry[0], copy.deepcopy(entry[1])

    def _scan(self, collection: str) -> List[tuple[int, Document]]:
        with self._lock:
            docs = self.collections.get(collection, {})
            return [
                (version, Document(doc_id, f"{collection}/{doc_id}", copy.deepcopy(data)))
                for doc_id, (version, data) in docs.items()
            ]

    def _commit(self, txn: Transaction) -> None:
        for path, data in txn.pending.items():
            collection, doc_id = split_path(path)
            docs = self.collections.setdefault(collection, {})
            if data is None:
                docs.pop(doc_id, None)
                if not docs:
                    self.collections.pop(collection, None)
            else:
                version = docs.get(doc_id, (0, None))[0]
                docs[doc_id] = (version + 1, copy.deepcopy(data))


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    path = Column(String, primary_key=True)
    collection = Column(String, nullable=False, index=True)
    doc_id = Column(String, nullable=False)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(Float, nullable=False)


class SqlDocumentStore(_BaseDocumentStore):
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g.,
    Postgres or SQLite for tests).

    Transactions are optimistic: reads are unlocked and the commit checks
    that every document read is still at the version that was seen.
    """

    def __init__(
        self,
        database_url: str,
        feed: Optional[ChangeFeed] = None,
        max_attempts: int = 5,
    ):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        super().__init__(feed, max_attempts)
        engine_options: dict = {"future": True, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_options["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_options)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _read(self, path: str) -> tuple[int, Optional[dict]]:
        with self.Session() as session:
            row = session.get(DocumentRow, path)
            if not row:
                return 0, None
            return row.version, copy.deepcopy(row.data)

    def _scan(self, collection: str) -> List[tuple[int, Document]]:
        with self.Session() as session:
            rows = session.execute(
                select(DocumentRow).where(DocumentRow.collection == collection)
            ).scalars()
            return [
                (row.version, Document(row.doc_id, row.path, copy.deepcopy(row.data)))
                for row in rows
            ]

    def _commit(self, txn: Transaction) -> None:
        paths = sorted(set(txn.read_versions) | set(txn.pending))
        now = time.time()
        try:
            with self.Session() as session, session.begin():
                rows = {
                    row.path: row
                    for row in session.execute(
                        select(DocumentRow)
                        .where(DocumentRow.path.in_(paths))
                        .with_for_update()
                    ).scalars()
                }
                for path, seen in txn.read_versions.items():
                    row = rows.get(path)
                    if (row.version if row else 0) != seen:
                        raise TransactionConflictError(f"Concurrent write to {path}")
                for path, data in txn.pending.items():
                    row = rows.get(path)
                    if data is None:
                        if row is not None:
                            session.delete(row)
                        continue
                    if row is None:
                        collection, doc_id = split_path(path)
                        session.add(
                            DocumentRow(
                                path=path,
                                collection=collection,
                                doc_id=doc_id,
                                data=data,
                                version=1,
                                updated_at=now,
                            )
                        )
                    else:
                        row.data = copy.deepcopy(data)
                        row.version = row.version + 1
                        row.updated_at = now
        except IntegrityError as exc:
            raise TransactionConflictError(str(exc)) from exc
