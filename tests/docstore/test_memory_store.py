from __future__ import annotations

import pytest

from school_attendance.docstore.errors import DocumentNotFoundError, StoreError
from school_attendance.docstore.fields import DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, ArrayUnion
from school_attendance.docstore.memory_store import InMemoryDocumentStore

from conftest import FIXED_NOW


def test_update_dotted_path_keeps_sibling_fields(store):
    store.set("c", "d", {"history": {"01": [1], "02": [2]}, "name": "x"})

    store.update("c", "d", {"history.02": [], "history.03": [3]})

    assert store.get("c", "d") == {"history": {"01": [1], "02": [], "03": [3]}, "name": "x"}


def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        store.update("c", "missing", {"a": 1})
    assert store.get("c", "missing") is None


def test_set_merge_is_deep(store):
    store.set("c", "d", {"meta": {"a": 1, "b": 2}, "keep": True})

    store.set("c", "d", {"meta": {"b": 3}}, merge=True)

    assert store.get("c", "d") == {"meta": {"a": 1, "b": 3}, "keep": True}


def test_set_without_merge_overwrites(store):
    store.set("c", "d", {"a": 1})
    store.set("c", "d", {"b": 2})
    assert store.get("c", "d") == {"b": 2}


def test_array_union_uses_deep_equality(store):
    ref = {"nisn": "1", "nama": "Ani", "jk": "P"}
    store.set("c", "d", {"refs": [ref]})

    store.update("c", "d", {"refs": ArrayUnion(dict(ref), {"nisn": "2", "nama": "Budi", "jk": "L"})})

    assert store.get("c", "d")["refs"] == [ref, {"nisn": "2", "nama": "Budi", "jk": "L"}]


def test_array_remove_needs_exact_match(store):
    store.set("c", "d", {"refs": [{"nisn": "1", "nama": "Ani", "jk": "P"}, {"nisn": "1", "nama": "Ani", "jk": "P"}]})

    store.update("c", "d", {"refs": ArrayRemove({"nisn": "1", "nama": "ANI", "jk": "P"})})
    assert len(store.get("c", "d")["refs"]) == 2

    store.update("c", "d", {"refs": ArrayRemove({"nisn": "1", "nama": "Ani", "jk": "P"})})
    assert store.get("c", "d")["refs"] == []


def test_merge_set_with_union_creates_document(store):
    store.set("c", "d", {"students": ArrayUnion({"nisn": "1"})}, merge=True)
    store.set("c", "d", {"students": ArrayUnion({"nisn": "1"}, {"nisn": "2"})}, merge=True)

    assert store.get("c", "d") == {"students": [{"nisn": "1"}, {"nisn": "2"}]}


def test_server_timestamp_and_delete_field(store):
    store.set("c", "d", {"a": 1, "b": 2})

    store.update("c", "d", {"a": DELETE_FIELD, "at": SERVER_TIMESTAMP})

    assert store.get("c", "d") == {"b": 2, "at": FIXED_NOW}


def test_batch_is_all_or_nothing(store):
    store.set("c", "existing", {"v": 1})

    batch = store.batch()
    batch.set("c", "new", {"v": 2})
    batch.update("c", "existing", {"v": 3})
    batch.update("c", "missing", {"v": 4})

    with pytest.raises(DocumentNotFoundError):
        batch.commit()

    assert store.get("c", "new") is None
    assert store.get("c", "existing") == {"v": 1}


def test_batch_applies_in_order(store):
    batch = store.batch()
    batch.set("c", "d", {"v": 1}).update("c", "d", {"w": 2}).delete("c", "gone")
    batch.commit()

    assert store.get("c", "d") == {"v": 1, "w": 2}
    assert store.commits == 1
    assert store.writes == 3


def test_batch_cannot_be_committed_twice(store):
    batch = store.batch().set("c", "d", {"v": 1})
    batch.commit()
    with pytest.raises(StoreError):
        batch.commit()


def test_oversize_batch_is_rejected():
    store = InMemoryDocumentStore(max_batch_writes=2)
    batch = store.batch()
    for i in range(3):
        batch.set("c", str(i), {"i": i})

    with pytest.raises(StoreError):
        batch.commit()
    assert store.scan("c") == []


def test_query_filters_and_orders(store):
    store.set("students", "1", {"rombel_id": "A", "nama": "Citra"})
    store.set("students", "2", {"rombel_id": "B", "nama": "Ani"})
    store.set("students", "3", {"rombel_id": "A", "nama": "Ani"})

    docs = store.query("students", where=[("rombel_id", "A")], order_by="nama")

    assert [d.id for d in docs] == ["3", "1"]


def test_returned_documents_are_copies(store):
    store.set("c", "d", {"items": [1]})
    doc = store.get("c", "d")
    doc["items"].append(2)
    assert store.get("c", "d") == {"items": [1]}
