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
"""Posts, announcements and events."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Type, TypeVar

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from community import validation, visibility
from community.errors import NotFoundError, PermissionDeniedError
from community.store import DbClient, QueryFilter, StoredDocument, from_document, to_document
from shared.api import EventForm
from shared.constants import (
    ANNOUNCEMENTS_COLLECTION,
    EVENT_FEED_LIMIT,
    EVENTS_COLLECTION,
    FEED_CANDIDATE_LIMIT,
    POSTS_COLLECTION,
)
from shared.types import Announcement, Event, InlineAttachment, Post, Role, UserProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")


def load_all(data_class: Type[T], docs: Iterable[StoredDocument]) -> List[T]:
    return [from_document(data_class, doc) for doc in docs]


def _insert(db: DbClient, collection: str, item) -> str:
    data = to_document(item)
    data["createdAt"] = SERVER_TIMESTAMP
    item.id = db.add(collection, data)
    logger.info("Created %s/%s", collection, item.id)
    return item.id


def _delete_authored(
    db: DbClient, collection: str, actor: Optional[UserProfile], doc_id: str, label: str
) -> None:
    doc = db.get(collection, doc_id)
    if doc is None:
        raise NotFoundError(f"{label} not found.")
    if not visibility.can_delete_authored(actor, doc.data.get("authorId", "")):
        raise PermissionDeniedError(f"You can only delete your own {label.lower()}s.")
    db.delete(collection, doc_id)
    logger.info("Deleted %s/%s", collection, doc_id)


@dataclass(frozen=True)
class FeedQuery:
    """A newest-first query that dashboard feed candidates are drawn from."""

    collection: str
    filters: Tuple[QueryFilter, ...] = ()
    limit: int = FEED_CANDIDATE_LIMIT

    def run(self, db: DbClient) -> List[StoredDocument]:
        return db.query(
            self.collection,
            list(self.filters),
            order_by="createdAt",
            descending=True,
            limit=self.limit,
        )


def _department_filter(viewer: UserProfile) -> Tuple[QueryFilter, ...]:
    return (QueryFilter("authorDepartment", "==", viewer.department),)


def post_feed_queries(viewer: Optional[UserProfile]) -> List[FeedQuery]:
    """
    The queries a viewer's post feed is built from.

    Each department gets its own candidate window so that a busy department
    never pushes a quiet one out of the feed. Deans and HODs also draw from
    the admin posts.
    """
    if viewer is None:
        return []
    if visibility.is_admin(viewer):
        return [FeedQuery(POSTS_COLLECTION)]
    if not viewer.department:
        return []
    queries = [FeedQuery(POSTS_COLLECTION, _department_filter(viewer))]
    if visibility.is_privileged(viewer):
        queries.append(
            FeedQuery(POSTS_COLLECTION, (QueryFilter("authorRole", "==", Role.ADMIN.value),))
        )
    return queries


def announcement_feed_queries(viewer: Optional[UserProfile]) -> List[FeedQuery]:
    if viewer is None or not viewer.department:
        return []
    return [FeedQuery(ANNOUNCEMENTS_COLLECTION, _department_filter(viewer))]


def feed_candidates(db: DbClient, queries: Iterable[FeedQuery]) -> List[StoredDocument]:
    docs: List[StoredDocument] = []
    for query in queries:
        docs.extend(query.run(db))
    return docs


# Posts


def create_post(
    db: DbClient,
    actor: Optional[UserProfile],
    content: str,
    image: Optional[InlineAttachment] = None,
) -> Post:
    if not visibility.can_create_post(actor):
        raise PermissionDeniedError("Only deans and HODs can create posts.")
    content = validation.require_content(content)
    image_url = validation.validate_data_url(image.data_url, "image") if image else None
    post = Post(
        id="",
        author_id=actor.uid,
        author_name=actor.username,
        content=content,
        author_role=actor.role,
        author_department=actor.department,
        author_designation=actor.designation,
        image_url=image_url,
    )
    _insert(db, POSTS_COLLECTION, post)
    return post


def delete_post(db: DbClient, actor: Optional[UserProfile], post_id: str) -> None:
    _delete_authored(db, POSTS_COLLECTION, actor, post_id, "Post")


def latest_posts(db: DbClient, viewer: Optional[UserProfile]) -> List[Post]:
    candidates = load_all(Post, feed_candidates(db, post_feed_queries(viewer)))
    return visibility.select_posts(candidates, viewer)


def list_user_posts(db: DbClient, uid: str) -> List[Post]:
    """A user's own posts, newest first (the activity page)."""
    docs = db.query(POSTS_COLLECTION, [QueryFilter("authorId", "==", uid)])
    return visibility.newest_first(load_all(Post, docs))


# Announcements


def create_announcement(
    db: DbClient,
    actor: Optional[UserProfile],
    content: str,
    attachment: Optional[InlineAttachment] = None,
) -> Announcement:
    if not visibility.can_create_announcement(actor):
        raise PermissionDeniedError("Only deans and HODs can create announcements.")
    content = validation.require_content(content)
    announcement = Announcement(
        id="",
        author_id=actor.uid,
        author_name=actor.username,
        content=content,
        author_department=actor.department,
        author_designation=actor.designation,
    )
    if attachment is not None:
        attachment = validation.validate_attachment(attachment)
        announcement.file_url = attachment.data_url
        announcement.file_name = attachment.name
        announcement.file_type = attachment.type
    _insert(db, ANNOUNCEMENTS_COLLECTION, announcement)
    return announcement


def delete_announcement(
    db: DbClient, actor: Optional[UserProfile], announcement_id: str
) -> None:
    _delete_authored(db, ANNOUNCEMENTS_COLLECTION, actor, announcement_id, "Announcement")


def latest_announcements(
    db: DbClient, viewer: Optional[UserProfile]
) -> List[Announcement]:
    candidates = load_all(
        Announcement, feed_candidates(db, announcement_feed_queries(viewer))
    )
    return visibility.select_announcements(candidates, viewer)


def list_announcements(
    db: DbClient, viewer: Optional[UserProfile]
) -> List[Announcement]:
    """Every announcement from the viewer's department."""
    if viewer is None or not viewer.department:
        return []
    docs = db.query(
        ANNOUNCEMENTS_COLLECTION,
        [QueryFilter("authorDepartment", "==", viewer.department)],
    )
    return visibility.select_announcements(
        load_all(Announcement, docs), viewer, limit=None
    )


# Events


def create_event(db: DbClient, actor: Optional[UserProfile], form: EventForm) -> Event:
    if not visibility.can_create_event(actor):
        raise PermissionDeniedError("Only admins and faculty can create events.")
    form = validation.validate_event(form)
    event = Event(
        id="",
        title=form.title,
        description=form.description,
        location=form.location,
        date=form.date,
        author_id=actor.uid,
        author_name=actor.username,
        registration_link=form.registration_link,
        image_url=form.image_url,
    )
    _insert(db, EVENTS_COLLECTION, event)
    return event


def get_event(db: DbClient, event_id: str) -> Event:
    doc = db.get(EVENTS_COLLECTION, event_id)
    if doc is None:
        raise NotFoundError("Event not found.")
    return from_document(Event, doc)


def delete_event(db: DbClient, actor: Optional[UserProfile], event_id: str) -> None:
    _delete_authored(db, EVENTS_COLLECTION, actor, event_id, "Event")


def list_events(db: DbClient) -> List[Event]:
    """All events by event date, newest first."""
    return load_all(Event, db.query(EVENTS_COLLECTION, order_by="date", descending=True))


def latest_events(db: DbClient, limit: int = EVENT_FEED_LIMIT) -> List[Event]:
    docs = db.query(
        EVENTS_COLLECTION, order_by="createdAt", descending=True, limit=limit
    )
    return load_all(Event, docs)


def upcoming_events(db: DbClient, today: str) -> List[Event]:
    """Events dated today or later, soonest first."""
    docs = db.query(
        EVENTS_COLLECTION, [QueryFilter("date", ">=", today)], order_by="date"
    )
    return load_all(Event, docs)
