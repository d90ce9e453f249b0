"""Thin handles over the two Firebase data stores used by the group services.

``DocumentStore`` wraps a Firestore client and is the source of truth for
groups, invitations and join requests. ``RealtimeStore`` wraps a Realtime
Database reference and holds the per-user ``group_meta_data`` projection.
The two stores share no transaction: callers write Firestore first and then
update the Realtime Database on a best-effort basis.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from firebase_admin import firestore

from .constants import FIRESTORE_BATCH_LIMIT
from .types import QueryFilter

if TYPE_CHECKING:
    from firebase_admin.db import Reference
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

T = TypeVar("T")


def server_timestamp() -> Any:
    """Return the sentinel Firestore replaces with the commit time."""
    return firestore.SERVER_TIMESTAMP


def now_ms() -> int:
    """Current time in epoch milliseconds, the unit used for expiries."""
    return int(time.time() * 1000)


def split_path(path: str) -> tuple[str, str]:
    """Split ``collection/docId`` into its two parts."""
    collection, _, doc_id = path.partition("/")
    if not collection or not doc_id or "/" in doc_id:
        raise ValueError(f"Invalid document path: {path!r}")
    return collection, doc_id


class StoreTransaction:
    """Document operations bound to a single Firestore transaction."""

    def __init__(self, store: DocumentStore, transaction: Transaction) -> None:
        self._store = store
        self._transaction = transaction

    def get_document(self, path: str) -> dict[str, Any] | None:
        """Read a document inside the transaction."""
        snapshot = self._store.ref(path).get(transaction=self._transaction)
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def set_document(self, path: str, data: dict[str, Any]) -> None:
        self._transaction.set(self._store.ref(path), data)

    def update_document(self, path: str, partial: dict[str, Any]) -> None:
        self._transaction.update(self._store.ref(path), partial)

    def delete_document(self, path: str) -> None:
        self._transaction.delete(self._store.ref(path))


class DocumentStore:
    """Firestore handle used by the group services."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def ref(self, path: str) -> DocumentReference:
        """Return the document reference for ``collection/docId``."""
        collection, doc_id = split_path(path)
        return self.client.collection(collection).document(doc_id)

    def get_document(self, path: str) -> dict[str, Any] | None:
        snapshot = self.ref(path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def get_snapshot(self, path: str) -> DocumentSnapshot | None:
        """Return the raw snapshot, used as a pagination cursor."""
        snapshot = self.ref(path).get()
        return snapshot if snapshot.exists else None

    def set_document(self, path: str, data: dict[str, Any]) -> None:
        self.ref(path).set(data)

    def update_document(self, path: str, partial: dict[str, Any]) -> None:
        self.ref(path).update(partial)

    def delete_document(self, path: str) -> None:
        self.ref(path).delete()

    def new_id(self, collection: str) -> str:
        """Reserve a generated document id without writing anything."""
        return self.client.collection(collection).document().id

    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document with a generated id and return that id."""
        new_ref = self.client.collection(collection).document()
        new_ref.set(data)
        return new_ref.id

    def delete_documents(self, paths: Iterable[str]) -> int:
        """Delete many documents using batched writes."""
        batch = self.client.batch()
        pending = 0
        deleted = 0
        for path in paths:
            batch.delete(self.ref(path))
            pending += 1
            if pending >= FIRESTORE_BATCH_LIMIT:
                batch.commit()
                deleted += pending
                batch = self.client.batch()
                pending = 0
        if pending:
            batch.commit()
            deleted += pending
        return deleted

    def run_transaction(self, fn: Callable[[StoreTransaction], T]) -> T:
        """Run ``fn`` inside a Firestore transaction, retrying on contention.

        Exceptions raised by ``fn`` roll the transaction back and propagate.
        """
        transaction = self.client.transaction()

        @firestore.transactional
        def _run(txn: Transaction) -> T:
            return fn(StoreTransaction(self, txn))

        return _run(transaction)

    def query_where(  # noqa: PLR0913
        self,
        collection: str,
        *filters: QueryFilter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        """Run an equality/range query and return the matching snapshots."""
        query: Any = self.client.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=firestore.FieldFilter(field, op, value))
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if cursor is not None:
            query = query.start_after(cursor)
        if limit:
            query = query.limit(limit)
        return [doc for doc in query.stream() if doc.exists]


class RealtimeStore:
    """Realtime Database handle rooted at ``/``."""

    def __init__(self, root: Reference) -> None:
        self.root = root

    def get_path(self, path: str) -> Any:
        return self.root.child(path).get()

    def set_path(self, path: str, value: Any) -> None:
        if value is None:
            # Reference.set() rejects None; a multi-path update with None deletes.
            self.root.update({path: None})
            return
        self.root.child(path).set(value)

    def delete_path(self, path: str) -> None:
        self.root.child(path).delete()

    def batch_update(self, updates: dict[str, Any]) -> None:
        """Apply a multi-path update atomically."""
        if updates:
            self.root.update(updates)
