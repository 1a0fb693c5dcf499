# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""
Document store access for the community collections.

Firestore is the store of record. `InMemoryDbClient` mirrors the part of its
behavior the app relies on (filters, ordering, limits, server timestamps,
field deletes, snapshot listeners) so tests and local runs need no emulator.
"""

from __future__ import annotations

import copy
import logging
import operator
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol, Sequence, Type, TypeVar

from dacite import Config, from_dict
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import DELETE_FIELD, SERVER_TIMESTAMP, Query
from google.cloud.firestore_v1 import ArrayRemove, ArrayUnion
from google.cloud.firestore_v1.base_query import FieldFilter

from community.errors import NotFoundError
from shared.constants import MAX_BATCH_OPERATIONS
from shared.json_utils import convert_keys
from shared.types import Designation, Gender, ResourceType, Role

logger = logging.getLogger(__name__)

T = TypeVar("T")

DACITE_CONFIG = Config(
    check_types=False, cast=[Role, Designation, Gender, ResourceType]
)


@dataclass(frozen=True)
class QueryFilter:
    field: str
    op: str
    value: Any


@dataclass
class StoredDocument:
    id: str
    data: dict


SnapshotCallback = Callable[[list[StoredDocument]], None]
DocumentCallback = Callable[[Optional[StoredDocument]], None]
Unsubscribe = Callable[[], None]


def from_document(data_class: Type[T], doc: StoredDocument) -> T:
    """Builds a snake_case dataclass from a camelCase document."""
    data = convert_keys(doc.data, "camel_to_snake")
    data["id"] = doc.id
    return from_dict(data_class=data_class, data=data, config=DACITE_CONFIG)


def to_document(obj: Any, exclude: Sequence[str] = ("id",)) -> dict:
    """
    Converts a dataclass to a camelCase document.

    Fields in `exclude` and fields set to None are left out so optional values
    are absent from the stored document rather than null.
    """
    data = {
        key: value
        for key, value in asdict(obj).items()
        if key not in exclude and value is not None
    }
    return convert_keys(data, "snake_to_camel")


class DbClient(Protocol):
    """Operations the app needs from the document store."""

    def add(self, collection: str, data: dict) -> str:
        ...

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        ...

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        ...

    def delete_where(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        batch_size: int = MAX_BATCH_OPERATIONS,
    ) -> int:
        ...

    def array_union(self, collection: str, doc_id: str, field: str, values: list) -> None:
        ...

    def array_remove(self, collection: str, doc_id: str, field: str, values: list) -> None:
        ...

    def watch(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Unsubscribe:
        ...

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Unsubscribe:
        ...


_COMPARATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
    "array_contains": lambda value, item: isinstance(value, list) and item in value,
}


def _matches(data: dict, query_filter: QueryFilter) -> bool:
    # Firestore never matches documents that lack the filtered field.
    if query_filter.field not in data:
        return False
    compare = _COMPARATORS.get(query_filter.op)
    if compare is None:
        raise ValueError(f"Unsupported filter operator: {query_filter.op}")
    try:
        return bool(compare(data[query_filter.field], query_filter.value))
    except TypeError:
        return False


def _resolve(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {
            key: _resolve(item, now)
            for key, item in value.items()
            if item is not DELETE_FIELD
        }
    if isinstance(value, list):
        return [_resolve(item, now) for item in value]
    return copy.deepcopy(value)


@dataclass
class _Listener:
    collection: str
    callback: Callable
    filters: Sequence[QueryFilter] = ()
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    doc_id: Optional[str] = None


class InMemoryDbClient:
    """In-process document store for development and tests."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self._listeners: dict[str, _Listener] = {}
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()
            self._listeners.clear()

    def _docs(self, collection: str) -> dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            docs = self._docs(collection)
            if merge and doc_id in docs:
                merged = dict(docs[doc_id])
                for key, value in data.items():
                    if value is DELETE_FIELD:
                        merged.pop(key, None)
                    else:
                        merged[key] = _resolve(value, now)
                docs[doc_id] = merged
            else:
                docs[doc_id] = _resolve(data, now)
        self._notify(collection, doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._lock:
            data = self._docs(collection).get(doc_id)
            if data is None:
                return None
            return StoredDocument(id=doc_id, data=copy.deepcopy(data))

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            if doc_id not in self._docs(collection):
                raise NotFoundError(f"No document to update: {collection}/{doc_id}")
        self.set(collection, doc_id, data, merge=True)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._docs(collection).pop(doc_id, None)
        self._notify(collection, doc_id)

    def _run_query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        with self._lock:
            items = [
                StoredDocument(id=doc_id, data=copy.deepcopy(data))
                for doc_id, data in self._docs(collection).items()
                if all(_matches(data, f) for f in filters)
            ]
        if order_by:
            # Like Firestore, ordering on a field drops documents without it.
            items = [item for item in items if item.data.get(order_by) is not None]
            items.sort(key=lambda item: item.data[order_by], reverse=descending)
        if limit is not None:
            items = items[:limit]
        return items

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        return self._run_query(collection, filters, order_by, descending, limit)

    def delete_where(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        batch_size: int = MAX_BATCH_OPERATIONS,
    ) -> int:
        matches = self._run_query(collection, filters)
        with self._lock:
            docs = self._docs(collection)
            for doc in matches:
                logger.info("Deleting %s/%s", collection, doc.id)
                docs.pop(doc.id, None)
        if matches:
            self._notify(collection, None)
        return len(matches)

    def array_union(self, collection: str, doc_id: str, field: str, values: list) -> None:
        with self._lock:
            data = self._docs(collection).get(doc_id)
            if data is None:
                raise NotFoundError(f"No document to update: {collection}/{doc_id}")
            current = list(data.get(field) or [])
            current.extend(v for v in values if v not in current)
            data[field] = current
        self._notify(collection, doc_id)

    def array_remove(self, collection: str, doc_id: str, field: str, values: list) -> None:
        with self._lock:
            data = self._docs(collection).get(doc_id)
            if data is None:
                raise NotFoundError(f"No document to update: {collection}/{doc_id}")
            data[field] = [v for v in data.get(field) or [] if v not in values]
        self._notify(collection, doc_id)

    def watch(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Unsubscribe:
        listener = _Listener(collection, callback, filters, order_by, descending, limit)
        return self._subscribe(listener)

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Unsubscribe:
        listener = _Listener(collection, callback, doc_id=doc_id)
        return self._subscribe(listener)

    def _subscribe(self, listener: _Listener) -> Unsubscribe:
        key = uuid.uuid4().hex
        with self._lock:
            self._listeners[key] = listener
        self._deliver(listener)

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(key, None)

        return unsubscribe

    def _deliver(self, listener: _Listener) -> None:
        if listener.doc_id is not None:
            listener.callback(self.get(listener.collection, listener.doc_id))
        else:
            listener.callback(
                self._run_query(
                    listener.collection,
                    listener.filters,
                    listener.order_by,
                    listener.descending,
                    listener.limit,
                )
            )

    def _notify(self, collection: str, doc_id: Optional[str]) -> None:
        with self._lock:
            listeners = [
                listener
                for listener in self._listeners.values()
                if listener.collection == collection
                and (listener.doc_id is None or doc_id is None or listener.doc_id == doc_id)
            ]
        # Callbacks run outside the lock so they may write back to the store.
        for listener in listeners:
            self._deliver(listener)


class FirestoreDbClient:
    """Firestore-backed store using the Admin SDK client."""

    def __init__(self, client=None):
        if client is None:
            from firebase_admin import firestore

            client = firestore.client()
        self.client = client

    def _build_query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        query = self.client.collection(collection)
        for f in filters:
            query = query.where(filter=FieldFilter(f.field, f.op, f.value))
        if order_by:
            direction = Query.DESCENDING if descending else Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return query

    def add(self, collection: str, data: dict) -> str:
        _, doc_ref = self.client.collection(collection).add(data)
        return doc_ref.id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self.client.collection(collection).document(doc_id).set(data, merge=merge)

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        snapshot = self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        try:
            self.client.collection(collection).document(doc_id).update(data)
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}") from e

    def delete(self, collection: str, doc_id: str) -> None:
        self.client.collection(collection).document(doc_id).delete()

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        query = self._build_query(collection, filters, order_by, descending, limit)
        return [
            StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def delete_where(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        batch_size: int = MAX_BATCH_OPERATIONS,
    ) -> int:
        """
        Deletes every matching document in batches of at most `batch_size`.

        A failed batch is logged and skipped; the count covers committed
        batches only.
        """
        snapshots = list(self._build_query(collection, filters).stream())
        deleted = 0
        for start in range(0, len(snapshots), batch_size):
            chunk = snapshots[start : start + batch_size]
            batch = self.client.batch()
            for snapshot in chunk:
                logger.info("Deleting %s/%s", collection, snapshot.id)
                batch.delete(snapshot.reference)
            try:
                batch.commit()
            except google_exceptions.GoogleAPICallError as e:
                logger.error(
                    "Batch delete of %d %s documents failed: %s",
                    len(chunk),
                    collection,
                    e,
                )
                continue
            deleted += len(chunk)
        return deleted

    def array_union(self, collection: str, doc_id: str, field: str, values: list) -> None:
        self.update(collection, doc_id, {field: ArrayUnion(values)})

    def array_remove(self, collection: str, doc_id: str, field: str, values: list) -> None:
        self.update(collection, doc_id, {field: ArrayRemove(values)})

    def watch(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Unsubscribe:
        query = self._build_query(collection, filters, order_by, descending, limit)

        def on_snapshot(snapshots, changes, read_time):
            callback(
                [
                    StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
                    for snapshot in snapshots
                ]
            )

        watch = query.on_snapshot(on_snapshot)
        return watch.unsubscribe

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Unsubscribe:
        doc_ref = self.client.collection(collection).document(doc_id)

        def on_snapshot(snapshots, changes, read_time):
            snapshot = snapshots[0] if snapshots else None
            if snapshot is None or not snapshot.exists:
                callback(None)
                return
            callback(StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {}))

        watch = doc_ref.on_snapshot(on_snapshot)
        return watch.unsubscribe
