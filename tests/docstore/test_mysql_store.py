from __future__ import annotations

import json
from pathlib import Path

import mysql.connector
import pytest

from school_attendance.docstore.bootstrap import schema_statements
from school_attendance.docstore.errors import DocumentNotFoundError, StoreError, TransactionConflictError
from school_attendance.docstore.fields import ArrayUnion
from school_attendance.docstore.mysql_base import decode_document, json_path
from school_attendance.docstore.mysql_store import MySQLDocumentStore


class FakeDatabase:
    """Just enough of the `documents` table to run the store's statements."""

    def __init__(self):
        self.rows: dict[tuple[str, str], str] = {}
        self.statements: list[str] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on: str | None = None
        self.deadlocks = 0
        self.on_deadlock = None

    def connect(self):
        return FakeConnection(self)


class FakeConnection:
    def __init__(self, db: FakeDatabase):
        self._db = db
        self._pending: dict[tuple[str, str], str | None] = {}
        self.closed = False

    def cursor(self, dictionary=False):
        return FakeCursor(self)

    def commit(self):
        for key, value in self._pending.items():
            if value is None:
                self._db.rows.pop(key, None)
            else:
                self._db.rows[key] = value
        self._pending.clear()
        self._db.commits += 1

    def rollback(self):
        self._pending.clear()
        self._db.rollbacks += 1

    def close(self):
        self.closed = True

    def read(self, key):
        if key in self._pending:
            return self._pending[key]
        return self._db.rows.get(key)


class FakeCursor:
    def __init__(self, conn: FakeConnection):
        self._conn = conn
        self._db = conn._db
        self._result: list[dict] = []

    def execute(self, sql, params=()):
        sql = " ".join(sql.split())
        self._db.statements.append(sql)
        if self._db.fail_on and self._db.fail_on in sql:
            raise mysql.connector.Error("boom")
        if self._db.deadlocks and sql.startswith("INSERT INTO documents"):
            self._db.deadlocks -= 1
            if self._db.on_deadlock:
                self._db.on_deadlock(self._db)
            raise mysql.connector.Error(msg="Deadlock found when trying to get lock", errno=1213)

        if sql.startswith("SELECT data FROM documents WHERE collection=%s AND doc_id=%s"):
            value = self._conn.read(tuple(params))
            self._result = [{"data": value}] if value is not None else []
        elif sql.startswith("SELECT doc_id, data FROM documents WHERE collection=%s AND doc_id IN"):
            collection, *ids = params
            self._result = [
                {"doc_id": i, "data": self._conn.read((collection, i))}
                for i in ids
                if self._conn.read((collection, i)) is not None
            ]
        elif sql.startswith("SELECT doc_id, data FROM documents WHERE collection=%s"):
            collection, *conditions = params
            rows = []
            for (c, doc_id), value in sorted(self._db.rows.items()):
                if c != collection:
                    continue
                data = json.loads(value)
                if all(_extract(data, conditions[i]) == json.loads(conditions[i + 1]) for i in range(0, len(conditions), 2)):
                    rows.append({"doc_id": doc_id, "data": value})
            self._result = rows
        elif sql.startswith("INSERT INTO documents"):
            collection, doc_id, data = params
            self._conn._pending[(collection, doc_id)] = data
        elif sql.startswith("DELETE FROM documents"):
            self._conn._pending[tuple(params)] = None
        else:
            raise AssertionError(f"unexpected SQL: {sql}")

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)

    def close(self):
        pass


def _extract(data, path):
    node = data
    for part in path[2:].split("."):
        part = part.strip('"')
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


@pytest.fixture()
def db():
    return FakeDatabase()


@pytest.fixture()
def mysql_store(db):
    return MySQLDocumentStore(db, max_batch_writes=10)


def test_set_then_get_roundtrips_json(mysql_store, db):
    mysql_store.set("students", "1", {"nisn": "1", "nama": "Ani"})

    assert mysql_store.get("students", "1") == {"nisn": "1", "nama": "Ani"}
    assert db.commits == 2


def test_update_locks_row_and_keeps_other_dates(mysql_store, db):
    mysql_store.set("attendance_monthly", "k", {"history": {"01": [{"nisn": "1", "status": "S"}]}})

    mysql_store.update("attendance_monthly", "k", {"history.02": []})

    assert mysql_store.get("attendance_monthly", "k")["history"] == {"01": [{"nisn": "1", "status": "S"}], "02": []}
    assert any(s.endswith("FOR UPDATE") for s in db.statements)


def test_update_missing_document_rolls_back(mysql_store, db):
    with pytest.raises(DocumentNotFoundError):
        mysql_store.update("c", "missing", {"a": 1})
    assert db.rollbacks == 1
    assert db.rows == {}


def test_batch_is_one_transaction(mysql_store, db):
    batch = mysql_store.batch()
    batch.set("rombel", "X-TKJ1", {"daftar_siswa_ref": []})
    batch.update("rombel", "X-TKJ1", {"daftar_siswa_ref": ArrayUnion({"nisn": "1"})})
    batch.set("students", "1", {"nisn": "1"})
    batch.commit()

    assert db.commits == 1
    assert decode_document(db.rows[("rombel", "X-TKJ1")]) == {"daftar_siswa_ref": [{"nisn": "1"}]}
    assert ("students", "1") in db.rows


def test_driver_error_is_wrapped_and_rolled_back(mysql_store, db):
    db.fail_on = "INSERT INTO documents"
    with pytest.raises(StoreError):
        mysql_store.set("c", "d", {"a": 1})
    assert db.rollbacks == 1
    assert db.rows == {}


def test_deadlock_on_concurrent_create_reruns_the_batch(mysql_store, db):
    db.deadlocks = 1

    mysql_store.set("attendance_monthly", "k", {"history": {"01": []}}, merge=True)

    assert decode_document(db.rows[("attendance_monthly", "k")]) == {"history": {"01": []}}
    assert db.rollbacks == 1
    assert db.commits == 1


def test_deadlock_rerun_merges_into_row_committed_meanwhile(mysql_store, db):
    def other_writer_commits(database):
        database.rows[("attendance_monthly", "k")] = json.dumps({"history": {"01": [{"nisn": "1", "status": "S"}]}})

    db.deadlocks = 1
    db.on_deadlock = other_writer_commits

    mysql_store.set("attendance_monthly", "k", {"history": {"02": []}}, merge=True)

    assert decode_document(db.rows[("attendance_monthly", "k")])["history"] == {
        "01": [{"nisn": "1", "status": "S"}],
        "02": [],
    }


def test_second_deadlock_is_raised(mysql_store, db):
    db.deadlocks = 2

    with pytest.raises(TransactionConflictError) as excinfo:
        mysql_store.set("c", "d", {"a": 1})

    assert isinstance(excinfo.value, StoreError)
    assert db.rollbacks == 2
    assert db.rows == {}


def test_query_sorts_by_field(mysql_store):
    mysql_store.set("students", "1", {"rombel_id": "A", "nama": "Citra"})
    mysql_store.set("students", "2", {"rombel_id": "B", "nama": "Ani"})
    mysql_store.set("students", "3", {"rombel_id": "A", "nama": "Ani"})

    docs = mysql_store.query("students", where=[("rombel_id", "A")], order_by="nama")

    assert [d.id for d in docs] == ["3", "1"]


def test_get_many_and_delete(mysql_store):
    mysql_store.set("students", "1", {"nisn": "1"})
    mysql_store.set("students", "2", {"nisn": "2"})

    mysql_store.delete("students", "1")

    assert mysql_store.get_many("students", ["1", "2", "3"]) == {"2": {"nisn": "2"}}


def test_json_path_quotes_each_part():
    assert json_path("history.01") == '$."history"."01"'


def test_schema_statements_skip_database_selection():
    schema = Path(__file__).resolve().parents[2] / "database" / "schema.sql"

    statements = schema_statements(schema.read_text(encoding="utf-8"))

    assert len(statements) == 1
    assert statements[0].startswith("CREATE TABLE IF NOT EXISTS documents")
