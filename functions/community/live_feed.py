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
"""Dashboard feeds kept current from the store's snapshot listeners."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from community import visibility
from community.content import (
    FeedQuery,
    announcement_feed_queries,
    load_all,
    post_feed_queries,
)
from community.store import DbClient, StoredDocument, Unsubscribe, from_document
from shared.constants import EVENT_FEED_LIMIT, EVENTS_COLLECTION, USERS_COLLECTION
from shared.types import Announcement, Event, Post, UserProfile

logger = logging.getLogger(__name__)


@dataclass
class FeedSnapshot:
    viewer: Optional[UserProfile] = None
    posts: List[Post] = field(default_factory=list)
    announcements: List[Announcement] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)


class LiveFeed:
    """
    Re-evaluates a viewer's posts, announcements and events feeds.

    The viewer's profile decides which post and announcement queries are
    watched: whenever the department, role or designation changes the old
    listeners are dropped and the queries for the new profile are subscribed.
    Any snapshot re-runs the visibility rules and hands a fresh `FeedSnapshot`
    to `on_update`. Listener callbacks may arrive on background threads.
    """

    def __init__(
        self,
        db: DbClient,
        uid: str,
        on_update: Callable[[FeedSnapshot], None],
    ):
        self.db = db
        self.uid = uid
        self.on_update = on_update
        self._lock = threading.Lock()
        self._viewer: Optional[UserProfile] = None
        self._queries: Tuple[List[FeedQuery], List[FeedQuery]] = ([], [])
        self._generation = 0
        self._posts: Dict[int, List[Post]] = {}
        self._announcements: Dict[int, List[Announcement]] = {}
        self._events: List[Event] = []
        self._base_unsubscribes: List[Unsubscribe] = []
        self._scoped_unsubscribes: List[Unsubscribe] = []
        self._started = False
        self._holds = 0

    def start(self) -> None:
        self._base_unsubscribes = [
            self.db.watch_document(USERS_COLLECTION, self.uid, self._on_profile),
            self.db.watch(
                EVENTS_COLLECTION,
                self._on_events,
                order_by="createdAt",
                descending=True,
                limit=EVENT_FEED_LIMIT,
            ),
        ]
        with self._lock:
            self._started = True
        self._publish()

    def stop(self) -> None:
        with self._lock:
            unsubscribes = self._base_unsubscribes + self._scoped_unsubscribes
            self._base_unsubscribes, self._scoped_unsubscribes = [], []
            self._generation += 1
            self._started = False
        for unsubscribe in unsubscribes:
            unsubscribe()

    def current(self) -> FeedSnapshot:
        with self._lock:
            viewer = self._viewer
            posts = [post for batch in self._posts.values() for post in batch]
            announcements = [
                item for batch in self._announcements.values() for item in batch
            ]
            return FeedSnapshot(
                viewer=viewer,
                posts=visibility.select_posts(posts, viewer),
                announcements=visibility.select_announcements(announcements, viewer),
                events=list(self._events),
            )

    def _publish(self) -> None:
        with self._lock:
            if not self._started or self._holds:
                return
        try:
            self.on_update(self.current())
        except Exception as e:
            logger.exception("Feed update for %s failed: %s", self.uid, e)

    def _on_profile(self, doc: Optional[StoredDocument]) -> None:
        viewer = None
        if doc is not None:
            doc.data.setdefault("uid", doc.id)
            viewer = from_document(UserProfile, doc)
        queries = (post_feed_queries(viewer), announcement_feed_queries(viewer))
        with self._lock:
            self._viewer = viewer
            changed = queries != self._queries
            if changed:
                self._queries = queries
                self._generation += 1
                generation = self._generation
                self._posts, self._announcements = {}, {}
                stale, self._scoped_unsubscribes = self._scoped_unsubscribes, []
                self._holds += 1
        if changed:
            for unsubscribe in stale:
                unsubscribe()
            try:
                self._subscribe(generation, *queries)
            finally:
                with self._lock:
                    self._holds -= 1
        self._publish()

    def _subscribe(
        self,
        generation: int,
        post_queries: List[FeedQuery],
        announcement_queries: List[FeedQuery],
    ) -> None:
        unsubscribes = []
        for index, query in enumerate(post_queries):
            unsubscribes.append(
                self._watch(query, self._on_batch(generation, index, Post, self._posts))
            )
        for index, query in enumerate(announcement_queries):
            unsubscribes.append(
                self._watch(
                    query,
                    self._on_batch(generation, index, Announcement, self._announcements),
                )
            )
        with self._lock:
            if generation == self._generation:
                self._scoped_unsubscribes.extend(unsubscribes)
                unsubscribes = []
        # Superseded while subscribing.
        for unsubscribe in unsubscribes:
            unsubscribe()

    def _watch(self, query: FeedQuery, callback) -> Unsubscribe:
        return self.db.watch(
            query.collection,
            callback,
            filters=list(query.filters),
            order_by="createdAt",
            descending=True,
            limit=query.limit,
        )

    def _on_batch(self, generation: int, index: int, data_class, batches: Dict):
        def on_snapshot(docs: List[StoredDocument]) -> None:
            items = load_all(data_class, docs)
            with self._lock:
                if generation != self._generation:
                    return
                batches[index] = items
            self._publish()

        return on_snapshot

    def _on_events(self, docs: List[StoredDocument]) -> None:
        events = load_all(Event, docs)
        with self._lock:
            self._events = events
        self._publish()
