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
"""Role and department scoped visibility and permission rules."""

from typing import Iterable, List, Optional, TypeVar

from shared.constants import (
    ADMIN_POST_FEED_LIMIT,
    ANNOUNCEMENT_FEED_LIMIT,
    POST_FEED_LIMIT,
)
from shared.types import (
    Announcement,
    Designation,
    Post,
    Resource,
    ResourceType,
    Role,
    UserProfile,
)
from shared.utils import timestamp_seconds

T = TypeVar("T")

PRIVILEGED_DESIGNATIONS = frozenset({Designation.DEAN, Designation.HOD})


def is_admin(viewer: Optional[UserProfile]) -> bool:
    return viewer is not None and viewer.role == Role.ADMIN


def is_privileged(viewer: Optional[UserProfile]) -> bool:
    """Deans and heads of department."""
    return viewer is not None and viewer.designation in PRIVILEGED_DESIGNATIONS


def can_create_post(viewer: Optional[UserProfile]) -> bool:
    return is_privileged(viewer)


def can_create_announcement(viewer: Optional[UserProfile]) -> bool:
    return is_privileged(viewer)


def can_create_event(viewer: Optional[UserProfile]) -> bool:
    return viewer is not None and viewer.role in (Role.ADMIN, Role.FACULTY)


def can_manage_resources(viewer: Optional[UserProfile]) -> bool:
    return is_privileged(viewer) and bool(viewer.department)


def can_manage_users(viewer: Optional[UserProfile]) -> bool:
    return is_admin(viewer)


def can_manage_quick_links(viewer: Optional[UserProfile]) -> bool:
    return is_admin(viewer)


def can_manage_clubs(viewer: Optional[UserProfile]) -> bool:
    return is_admin(viewer)


def can_delete_authored(viewer: Optional[UserProfile], author_id: str) -> bool:
    """Authors may remove their own content; admins may remove anything."""
    if viewer is None:
        return False
    return viewer.uid == author_id or is_admin(viewer)


def newest_first(items: Iterable[T]) -> List[T]:
    return sorted(
        items, key=lambda item: timestamp_seconds(item.created_at), reverse=True
    )


def post_visible_to(post: Post, viewer: Optional[UserProfile]) -> bool:
    if viewer is None:
        return False
    if is_admin(viewer):
        return True
    if not viewer.department:
        return False
    same_department = post.author_department == viewer.department
    by_admin = post.author_role == Role.ADMIN
    if is_privileged(viewer):
        return same_department or by_admin
    return same_department and not by_admin


def post_feed_limit(viewer: Optional[UserProfile]) -> int:
    return ADMIN_POST_FEED_LIMIT if is_admin(viewer) else POST_FEED_LIMIT


def select_posts(
    posts: Iterable[Post], viewer: Optional[UserProfile], limit: Optional[int] = None
) -> List[Post]:
    """
    Picks the posts a viewer sees on the dashboard.

    Admins see everything. Deans and HODs see their department plus anything
    posted by an admin. Everyone else with a department sees their department
    without admin posts. Duplicate ids are collapsed, the newest are kept.
    """
    if limit is None:
        limit = post_feed_limit(viewer)
    unique = {post.id: post for post in posts}
    visible = [post for post in unique.values() if post_visible_to(post, viewer)]
    return newest_first(visible)[:limit]


def announcement_visible_to(
    announcement: Announcement, viewer: Optional[UserProfile]
) -> bool:
    if viewer is None or not viewer.department:
        return False
    return announcement.author_department == viewer.department


def select_announcements(
    announcements: Iterable[Announcement],
    viewer: Optional[UserProfile],
    limit: Optional[int] = ANNOUNCEMENT_FEED_LIMIT,
) -> List[Announcement]:
    unique = {item.id: item for item in announcements}
    visible = newest_first(
        item for item in unique.values() if announcement_visible_to(item, viewer)
    )
    return visible if limit is None else visible[:limit]


def select_resources(
    resources: Iterable[Resource],
    viewer: Optional[UserProfile],
    resource_type: Optional[ResourceType] = None,
) -> List[Resource]:
    if viewer is None or not viewer.department:
        return []
    return newest_first(
        resource
        for resource in resources
        if resource.department == viewer.department
        and (resource_type is None or resource.type == resource_type)
    )
