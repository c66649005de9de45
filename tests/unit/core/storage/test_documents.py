"""Tests for the in-memory DocumentStore."""

from __future__ import annotations

import pytest

from vitalfuse.core.storage.documents import (
    DocumentStore,
    InMemoryDocumentStore,
    StorageError,
    SupportsDelete,
)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


def test_put_get(store):
    store.put("c", "k", {"a": [1, 2]})
    assert store.get("c", "k") == {"a": [1, 2]}


def test_missing(store):
    assert store.get("c", "k") is None


def test_returned_documents_are_copies(store):
    store.put("c", "k", {"a": [1]})
    store.get("c", "k")["a"].append(2)
    assert store.get("c", "k") == {"a": [1]}


def test_stored_documents_are_copies(store):
    doc = {"a": [1]}
    store.put("c", "k", doc)
    doc["a"].append(2)
    assert store.get("c", "k") == {"a": [1]}


def test_non_json_rejected(store):
    with pytest.raises(StorageError, match="not JSON-serializable"):
        store.put("c", "k", {"a": float("inf")})
    with pytest.raises(StorageError):
        store.put("c", "k", {"a": {1, 2}})


def test_keys_and_count(store):
    store.put("c", "b", {})
    store.put("c", "a", {})
    store.put("d", "a", {})
    assert store.keys("c") == ["a", "b"]
    assert store.count("c") == 2
    assert store.count() == 3
    assert store.count("missing") == 0


def test_protocol(store):
    assert isinstance(store, DocumentStore)
    assert isinstance(store, SupportsDelete)


def test_delete(store):
    store.put("c", "a", {"v": 1})
    assert store.delete("c", "a") is True
    assert store.get("c", "a") is None
    assert store.delete("c", "a") is False
    assert store.delete("never", "a") is False
