from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.constants import DEFAULT_MAX_BATCH_WRITES
from .connection import DatabaseConnection
from .errors import TransactionConflictError
from .mysql_base import db_cursor, decode_document, encode_document, fetchall, fetchone, json_path
from .store import Document, WriteBatch, WriteOp, apply_op, check_batch_size, sort_documents

logger = logging.getLogger(__name__)


class MySQLDocumentStore:
    """Documents stored as JSON rows keyed by (collection, doc_id).

    Each commit is one transaction. Rows touched by the batch are read with
    ``SELECT ... FOR UPDATE`` before the new state is written, so two writers
    targeting different fields of the same document serialize instead of
    overwriting each other.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, max_batch_writes: int = DEFAULT_MAX_BATCH_WRITES):
        self._conn_factory = conn_factory
        self.max_batch_writes = int(max_batch_writes)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT data FROM documents WHERE collection=%s AND doc_id=%s",
                (collection, doc_id),
            )
            row = fetchone(cur)
            return decode_document(row["data"]) if row else None

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT doc_id, data FROM documents WHERE collection=%s AND doc_id IN ({placeholders})",
                (collection, *ids),
            )
            return {r["doc_id"]: decode_document(r["data"]) for r in fetchall(cur)}

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        self.batch().set(collection, doc_id, data, merge=merge).commit()

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.batch().update(collection, doc_id, fields).commit()

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch().delete(collection, doc_id).commit()

    def scan(self, collection: str) -> list[Document]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT doc_id, data FROM documents WHERE collection=%s ORDER BY doc_id",
                (collection,),
            )
            return [Document(id=r["doc_id"], data=decode_document(r["data"])) for r in fetchall(cur)]

    def query(
        self,
        collection: str,
        *,
        where: Sequence[tuple[str, Any]] = (),
        order_by: Optional[str] = None,
    ) -> list[Document]:
        sql = "SELECT doc_id, data FROM documents WHERE collection=%s"
        params: list[Any] = [collection]
        for path, value in where:
            sql += " AND JSON_EXTRACT(data, %s) = CAST(%s AS JSON)"
            params.extend([json_path(path), json.dumps(value)])
        sql += " ORDER BY doc_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            docs = [Document(id=r["doc_id"], data=decode_document(r["data"])) for r in fetchall(cur)]
        return sort_documents(docs, order_by)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply ``ops`` atomically, rerunning once if MySQL picks us as deadlock victim.

        Two writers creating the same missing row both take a gap lock on
        ``SELECT ... FOR UPDATE`` and then deadlock on the insert. The rerun
        reads the row the other writer committed and merges into it.
        """
        check_batch_size(ops, self.max_batch_writes)
        try:
            self._commit_once(ops)
        except TransactionConflictError as exc:
            logger.warning("Retrying batch of %d writes after deadlock: %s", len(ops), exc)
            self._commit_once(ops)

    def _commit_once(self, ops: Sequence[WriteOp]) -> None:
        now = datetime.now(timezone.utc)
        with db_cursor(self._conn_factory) as (_, cur):
            staged: dict[tuple[str, str], Optional[dict]] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                if key in staged:
                    existing = staged[key]
                elif op.kind == "delete":
                    existing = None
                else:
                    cur.execute(
                        "SELECT data FROM documents WHERE collection=%s AND doc_id=%s FOR UPDATE",
                        key,
                    )
                    row = fetchone(cur)
                    existing = decode_document(row["data"]) if row else None
                staged[key] = apply_op(existing, op, now)

            for (collection, doc_id), doc in staged.items():
                if doc is None:
                    cur.execute(
                        "DELETE FROM documents WHERE collection=%s AND doc_id=%s",
                        (collection, doc_id),
                    )
                else:
                    cur.execute(
                        """
                        INSERT INTO documents(collection, doc_id, data)
                        VALUES(%s,%s,%s)
                        ON DUPLICATE KEY UPDATE data=VALUES(data)
                        """,
                        (collection, doc_id, encode_document(doc)),
                    )
