from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..core.constants import DEFAULT_MAX_BATCH_WRITES
from .store import (
    Document,
    WriteBatch,
    WriteOp,
    apply_op,
    check_batch_size,
    matches,
    sort_documents,
)


class InMemoryDocumentStore:
    """Process-local document store.

    Every commit runs under one lock, so a batch is atomic and concurrent
    writers see each other's committed state.
    """

    def __init__(
        self,
        *,
        max_batch_writes: int = DEFAULT_MAX_BATCH_WRITES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.max_batch_writes = int(max_batch_writes)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()
        self.commits = 0
        self.writes = 0

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        with self._lock:
            docs = self._collections.get(collection, {})
            return {i: copy.deepcopy(docs[i]) for i in dict.fromkeys(doc_ids) if i in docs}

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        self.batch().set(collection, doc_id, data, merge=merge).commit()

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.batch().update(collection, doc_id, fields).commit()

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch().delete(collection, doc_id).commit()

    def scan(self, collection: str) -> list[Document]:
        with self._lock:
            docs = self._collections.get(collection, {})
            return [Document(id=i, data=copy.deepcopy(d)) for i, d in sorted(docs.items())]

    def query(
        self,
        collection: str,
        *,
        where: Sequence[tuple[str, Any]] = (),
        order_by: Optional[str] = None,
    ) -> list[Document]:
        docs = [d for d in self.scan(collection) if matches(d.data, where)]
        return sort_documents(docs, order_by)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def commit(self, ops: Sequence[WriteOp]) -> None:
        check_batch_size(ops, self.max_batch_writes)
        with self._lock:
            now = self._clock()
            staged: dict[tuple[str, str], Optional[dict]] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                existing = staged[key] if key in staged else self._collections.get(op.collection, {}).get(op.doc_id)
                staged[key] = apply_op(existing, op, now)

            for (collection, doc_id), doc in staged.items():
                docs = self._collections.setdefault(collection, {})
                if doc is None:
                    docs.pop(doc_id, None)
                else:
                    docs[doc_id] = doc
            self.commits += 1
            self.writes += len(ops)
