from __future__ import annotations

import logging
from typing import Any, Optional, Union

from ..docstore.store import DocumentStore
from .model import MonthlyPartition, SemesterPartition

logger = logging.getLogger(__name__)

Partition = Union[MonthlyPartition, SemesterPartition]


class AttendanceLedger:
    """Sparse date-keyed attendance maps, written one date at a time.

    A write targets only ``history.<date_key>``. Writes to different dates
    of one partition never touch each other's entries, so they can happen
    in any order or concurrently.
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    def write_day(self, partition: Partition, date_key: str, payload: Any) -> None:
        partition.check_date_key(date_key)
        if self._store.get(partition.collection, partition.doc_id) is None:
            # Merge so a partition created concurrently for another date keeps it.
            self._store.set(
                partition.collection,
                partition.doc_id,
                {**partition.base_fields(), "history": {date_key: payload}},
                merge=True,
            )
        else:
            self._store.update(partition.collection, partition.doc_id, {f"history.{date_key}": payload})
        logger.debug("Wrote %s/%s history.%s", partition.collection, partition.doc_id, date_key)

    def read_day(self, partition: Partition, date_key: str) -> Optional[Any]:
        """None when the date was never written; an empty list is a saved, all-present day."""
        partition.check_date_key(date_key)
        return self.read_partition(partition).get(date_key)

    def read_partition(self, partition: Partition) -> dict[str, Any]:
        doc = self._store.get(partition.collection, partition.doc_id)
        if not doc:
            return {}
        return dict(doc.get("history") or {})
