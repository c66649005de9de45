"""Document store collaborator: keyed JSON documents grouped in collections."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a document store read or write fails.

    Storage failures are worth retrying by the caller; the cause is chained.
    """

    retryable = True


@runtime_checkable
class DocumentStore(Protocol):
    """Persist and fetch JSON-representable documents by (collection, key)."""

    def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        """Create or overwrite a document (last write wins)."""
        ...

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        """Return the document, or None when no document has that key."""
        ...


@runtime_checkable
class SupportsDelete(Protocol):
    """A document store that can also remove documents."""

    def delete(self, collection: str, key: str) -> bool:
        """Remove a document. Returns True if it existed."""
        ...


class InMemoryDocumentStore:
    """Process-local document store for tests and offline runs.

    Documents are copied through JSON on the way in and on the way out, so
    callers never share mutable state with the store and non-JSON values
    fail at ``put`` the same way they would against a real backend.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, str]] = {}

    def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        try:
            body = json.dumps(document, allow_nan=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Document {collection}/{key} is not JSON-serializable: {exc}") from exc
        self._collections.setdefault(collection, {})[key] = body

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        body = self._collections.get(collection, {}).get(key)
        if body is None:
            return None
        return json.loads(body)

    def delete(self, collection: str, key: str) -> bool:
        return self._collections.get(collection, {}).pop(key, None) is not None

    def keys(self, collection: str) -> list[str]:
        return sorted(self._collections.get(collection, {}))

    def count(self, collection: str | None = None) -> int:
        if collection is not None:
            return len(self._collections.get(collection, {}))
        return sum(len(docs) for docs in self._collections.values())
