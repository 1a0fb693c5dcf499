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

import unittest
from datetime import datetime, timedelta, timezone

from community import visibility
from shared.types import (
    Announcement,
    Designation,
    Post,
    Resource,
    ResourceType,
    Role,
    UserProfile,
)

BASE_TIME = datetime(2025, 6, 1, tzinfo=timezone.utc)


def make_viewer(role=Role.STUDENT, department="CSE", designation=None):
    return UserProfile(
        uid="viewer",
        email="viewer@klu.ac.in",
        username="Viewer",
        department=department,
        role=role,
        designation=designation,
    )


def make_post(post_id, department="CSE", author_role=Role.FACULTY, minutes=0):
    return Post(
        id=post_id,
        author_id=f"author-{post_id}",
        author_name="Author",
        content=f"content {post_id}",
        author_role=author_role,
        author_department=department,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class PostVisibilityTest(unittest.TestCase):
    def setUp(self):
        self.posts = [
            make_post("cse-1", "CSE", minutes=1),
            make_post("ece-1", "ECE", minutes=2),
            make_post("admin-1", "ADMIN", author_role=Role.ADMIN, minutes=3),
            make_post("cse-admin", "CSE", author_role=Role.ADMIN, minutes=4),
            make_post("cse-2", "CSE", minutes=5),
        ]

    def test_admin_sees_everything_newest_first(self):
        viewer = make_viewer(role=Role.ADMIN, department="")
        selected = visibility.select_posts(self.posts, viewer)
        self.assertEqual(
            [p.id for p in selected], ["cse-2", "cse-admin", "admin-1", "ece-1", "cse-1"]
        )

    def test_admin_limit_is_ten(self):
        viewer = make_viewer(role=Role.ADMIN)
        posts = [make_post(f"p{i}", minutes=i) for i in range(15)]
        self.assertEqual(len(visibility.select_posts(posts, viewer)), 10)

    def test_privileged_sees_department_and_admin_posts(self):
        viewer = make_viewer(role=Role.FACULTY, designation=Designation.HOD)
        selected = visibility.select_posts(self.posts, viewer)
        self.assertEqual(
            [p.id for p in selected], ["cse-2", "cse-admin", "admin-1", "cse-1"]
        )

    def test_dean_is_privileged(self):
        viewer = make_viewer(role=Role.FACULTY, department="ECE", designation=Designation.DEAN)
        selected = visibility.select_posts(self.posts, viewer)
        self.assertEqual([p.id for p in selected], ["cse-admin", "admin-1", "ece-1"])

    def test_standard_user_sees_department_without_admin_posts(self):
        viewer = make_viewer()
        selected = visibility.select_posts(self.posts, viewer)
        self.assertEqual([p.id for p in selected], ["cse-2", "cse-1"])

    def test_club_incharge_is_not_privileged(self):
        viewer = make_viewer(role=Role.FACULTY, designation=Designation.CLUB_INCHARGE)
        selected = visibility.select_posts(self.posts, viewer)
        self.assertEqual([p.id for p in selected], ["cse-2", "cse-1"])

    def test_no_department_sees_nothing(self):
        viewer = make_viewer(department="")
        self.assertEqual(visibility.select_posts(self.posts, viewer), [])

    def test_no_viewer_sees_nothing(self):
        self.assertEqual(visibility.select_posts(self.posts, None), [])

    def test_standard_limit_is_five(self):
        viewer = make_viewer()
        posts = [make_post(f"p{i}", minutes=i) for i in range(8)]
        selected = visibility.select_posts(posts, viewer)
        self.assertEqual([p.id for p in selected], ["p7", "p6", "p5", "p4", "p3"])

    def test_duplicates_collapse(self):
        viewer = make_viewer(designation=Designation.HOD)
        post = make_post("dup")
        self.assertEqual(len(visibility.select_posts([post, post], viewer)), 1)

    def test_missing_author_role_counts_as_non_admin(self):
        viewer = make_viewer()
        post = make_post("legacy", author_role=None)
        self.assertEqual(visibility.select_posts([post], viewer), [post])

    def test_missing_timestamp_sorts_last(self):
        viewer = make_viewer()
        pending = make_post("pending")
        pending.created_at = None
        older = make_post("older", minutes=-10)
        selected = visibility.select_posts([pending, older], viewer)
        self.assertEqual([p.id for p in selected], ["older", "pending"])


class AnnouncementVisibilityTest(unittest.TestCase):
    def make(self, ann_id, department, minutes):
        return Announcement(
            id=ann_id,
            author_id="a",
            author_name="Dean",
            content="hello",
            author_department=department,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )

    def test_same_department_latest_three(self):
        items = [self.make(f"a{i}", "CSE", i) for i in range(5)]
        items.append(self.make("other", "ECE", 10))
        selected = visibility.select_announcements(items, make_viewer())
        self.assertEqual([a.id for a in selected], ["a4", "a3", "a2"])

    def test_unbounded_listing(self):
        items = [self.make(f"a{i}", "CSE", i) for i in range(5)]
        selected = visibility.select_announcements(items, make_viewer(), limit=None)
        self.assertEqual(len(selected), 5)

    def test_without_department(self):
        items = [self.make("a", "", 0)]
        self.assertEqual(visibility.select_announcements(items, make_viewer(department="")), [])


class ResourceVisibilityTest(unittest.TestCase):
    def test_filters_department_and_type(self):
        def make(res_id, department, res_type):
            return Resource(
                id=res_id,
                file_name="f.pdf",
                file_path=f"resources/{department}/{res_type}/f.pdf",
                type=res_type,
                department=department,
                author_id="a",
                author_name="A",
                created_at=BASE_TIME,
            )

        resources = [
            make("r1", "CSE", ResourceType.ACADEMIC_CALENDAR),
            make("r2", "CSE", ResourceType.EXAM_SCHEDULE),
            make("r3", "ECE", ResourceType.EXAM_SCHEDULE),
        ]
        viewer = make_viewer()
        self.assertEqual(
            [r.id for r in visibility.select_resources(resources, viewer)], ["r1", "r2"]
        )
        self.assertEqual(
            [
                r.id
                for r in visibility.select_resources(
                    resources, viewer, ResourceType.EXAM_SCHEDULE
                )
            ],
            ["r2"],
        )


class PermissionTest(unittest.TestCase):
    def test_event_creation(self):
        self.assertTrue(visibility.can_create_event(make_viewer(role=Role.FACULTY)))
        self.assertTrue(visibility.can_create_event(make_viewer(role=Role.ADMIN)))
        self.assertFalse(visibility.can_create_event(make_viewer()))

    def test_announcement_creation(self):
        self.assertTrue(
            visibility.can_create_announcement(make_viewer(designation=Designation.DEAN))
        )
        self.assertFalse(visibility.can_create_announcement(make_viewer(role=Role.ADMIN)))

    def test_resource_management_needs_department(self):
        self.assertFalse(
            visibility.can_manage_resources(
                make_viewer(department="", designation=Designation.HOD)
            )
        )

    def test_delete_authored(self):
        viewer = make_viewer()
        self.assertTrue(visibility.can_delete_authored(viewer, "viewer"))
        self.assertFalse(visibility.can_delete_authored(viewer, "someone-else"))
        self.assertTrue(
            visibility.can_delete_authored(make_viewer(role=Role.ADMIN), "someone-else")
        )


if __name__ == "__main__":
    unittest.main()
