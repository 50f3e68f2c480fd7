from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from .errors import DocumentNotFoundError, StoreError
from .fields import apply_set, apply_update, get_path


@dataclass(frozen=True)
class Document:
    id: str
    data: dict


@dataclass(frozen=True)
class WriteOp:
    kind: str  # "set" | "update" | "delete"
    collection: str
    doc_id: str
    data: Mapping[str, Any] = field(default_factory=dict)
    merge: bool = False


class DocumentStore(Protocol):
    max_batch_writes: int

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Partial update with dotted field paths; the document must exist."""

        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def scan(self, collection: str) -> Sequence[Document]:
        raise NotImplementedError

    def query(
        self,
        collection: str,
        *,
        where: Sequence[tuple[str, Any]] = (),
        order_by: Optional[str] = None,
    ) -> Sequence[Document]:
        raise NotImplementedError

    def batch(self) -> "WriteBatch":
        raise NotImplementedError

    def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply all ops atomically, in order."""

        raise NotImplementedError


class WriteBatch:
    """Collects writes and commits them as one all-or-nothing unit."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> "WriteBatch":
        self._ops.append(WriteOp("set", collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(WriteOp("delete", collection, doc_id))
        return self

    @property
    def ops(self) -> list[WriteOp]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        if self._committed:
            raise StoreError("Batch already committed")
        self._committed = True
        if self._ops:
            self._store.commit(list(self._ops))


def apply_op(existing: Optional[dict], op: WriteOp, now: datetime) -> Optional[dict]:
    """New document state after ``op``; ``None`` means deleted."""
    if op.kind == "delete":
        return None
    if op.kind == "set":
        return apply_set(existing, op.data, merge=op.merge, now=now)
    if op.kind == "update":
        if existing is None:
            raise DocumentNotFoundError(op.collection, op.doc_id)
        return apply_update(existing, op.data, now=now)
    raise StoreError(f"Unknown write kind: {op.kind!r}")


def check_batch_size(ops: Sequence[WriteOp], limit: Optional[int]) -> None:
    if limit and len(ops) > limit:
        raise StoreError(f"Batch has {len(ops)} writes, limit is {limit}")


def matches(data: Mapping[str, Any], where: Sequence[tuple[str, Any]]) -> bool:
    return all(get_path(data, path) == value for path, value in where)


def sort_documents(docs: list[Document], order_by: Optional[str]) -> list[Document]:
    if not order_by:
        return docs

    def key(doc: Document):
        value = get_path(doc.data, order_by)
        return (value is None, "" if value is None else value)

    return sorted(docs, key=key)
