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

from community import content
from community.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from community.store import InMemoryDbClient
from shared.api import EventForm
from shared.constants import ANNOUNCEMENTS_COLLECTION, EVENTS_COLLECTION, POSTS_COLLECTION
from shared.types import Designation, InlineAttachment, Role, UserProfile

BASE_TIME = datetime(2025, 6, 1, tzinfo=timezone.utc)

HOD = UserProfile(
    uid="hod",
    email="hod@klu.ac.in",
    username="Dr. Hod",
    department="CSE",
    role=Role.FACULTY,
    designation=Designation.HOD,
)
ADMIN = UserProfile(uid="admin", email="admin@klu.ac.in", username="Admin", role=Role.ADMIN)
STUDENT = UserProfile(uid="stu", email="stu@klu.ac.in", username="Stu", department="CSE")
FACULTY = UserProfile(
    uid="fac", email="fac@klu.ac.in", username="Fac", department="CSE", role=Role.FACULTY
)


class PostsTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_create_post_copies_author_fields(self):
        post = content.create_post(self.db, HOD, "  Lab closed Friday  ")
        stored = self.db.get(POSTS_COLLECTION, post.id).data
        self.assertEqual(stored["content"], "Lab closed Friday")
        self.assertEqual(stored["authorDepartment"], "CSE")
        self.assertEqual(stored["authorRole"], "faculty")
        self.assertEqual(stored["authorDesignation"], "hod")
        self.assertIsInstance(stored["createdAt"], datetime)
        self.assertNotIn("imageUrl", stored)

    def test_create_post_with_image(self):
        post = content.create_post(
            self.db, HOD, "pic", InlineAttachment(data_url="data:image/png;base64,aGk=")
        )
        self.assertEqual(post.image_url, "data:image/png;base64,aGk=")

    def test_students_cannot_post(self):
        with self.assertRaises(PermissionDeniedError):
            content.create_post(self.db, STUDENT, "hello")

    def test_empty_post(self):
        with self.assertRaises(InvalidInputError):
            content.create_post(self.db, HOD, "   ")

    def test_delete_by_author_or_admin(self):
        first = content.create_post(self.db, HOD, "one")
        second = content.create_post(self.db, HOD, "two")
        with self.assertRaises(PermissionDeniedError):
            content.delete_post(self.db, STUDENT, first.id)
        content.delete_post(self.db, HOD, first.id)
        content.delete_post(self.db, ADMIN, second.id)
        self.assertEqual(self.db.query(POSTS_COLLECTION), [])

    def test_delete_missing(self):
        with self.assertRaises(NotFoundError):
            content.delete_post(self.db, ADMIN, "missing")

    def test_latest_posts_for_student(self):
        for i, (department, role) in enumerate(
            [("CSE", "faculty"), ("ECE", "faculty"), ("CSE", "admin"), ("CSE", "faculty")]
        ):
            self.db.set(
                POSTS_COLLECTION,
                f"p{i}",
                {
                    "authorId": "a",
                    "authorName": "A",
                    "content": "c",
                    "authorRole": role,
                    "authorDepartment": department,
                    "createdAt": BASE_TIME + timedelta(minutes=i),
                },
            )
        posts = content.latest_posts(self.db, STUDENT)
        self.assertEqual([p.id for p in posts], ["p3", "p0"])

    def test_busy_department_does_not_hide_others(self):
        def add(collection, doc_id, department, minutes):
            self.db.set(
                collection,
                doc_id,
                {
                    "authorId": "a",
                    "authorName": "A",
                    "content": doc_id,
                    "authorRole": "faculty",
                    "authorDepartment": department,
                    "createdAt": BASE_TIME + timedelta(minutes=minutes),
                },
            )

        add(POSTS_COLLECTION, "cse-post", "CSE", 0)
        add(ANNOUNCEMENTS_COLLECTION, "cse-announcement", "CSE", 0)
        for i in range(1, 21):
            add(POSTS_COLLECTION, f"ece-post-{i}", "ECE", i)
            add(ANNOUNCEMENTS_COLLECTION, f"ece-announcement-{i}", "ECE", i)

        self.assertEqual([p.id for p in content.latest_posts(self.db, STUDENT)], ["cse-post"])
        self.assertEqual(
            [a.id for a in content.latest_announcements(self.db, STUDENT)],
            ["cse-announcement"],
        )
        self.assertEqual(len(content.latest_posts(self.db, ADMIN)), 10)

    def test_hod_feed_merges_admin_posts(self):
        for i in range(20):
            self.db.set(
                POSTS_COLLECTION,
                f"ece-{i}",
                {
                    "authorId": "e",
                    "authorName": "E",
                    "content": "c",
                    "authorRole": "faculty",
                    "authorDepartment": "ECE",
                    "createdAt": BASE_TIME + timedelta(minutes=10 + i),
                },
            )
        self.db.set(
            POSTS_COLLECTION,
            "from-admin",
            {
                "authorId": "admin",
                "authorName": "Admin",
                "content": "c",
                "authorRole": "admin",
                "authorDepartment": "ADMIN",
                "createdAt": BASE_TIME + timedelta(minutes=1),
            },
        )
        self.db.set(
            POSTS_COLLECTION,
            "cse",
            {
                "authorId": "hod",
                "authorName": "Dr. Hod",
                "content": "c",
                "authorRole": "faculty",
                "authorDepartment": "CSE",
                "createdAt": BASE_TIME,
            },
        )
        self.assertEqual(
            [p.id for p in content.latest_posts(self.db, HOD)], ["from-admin", "cse"]
        )
        self.assertEqual([p.id for p in content.latest_posts(self.db, STUDENT)], ["cse"])

    def test_activity_lists_own_posts(self):
        content.create_post(self.db, HOD, "mine")
        self.db.set(
            POSTS_COLLECTION,
            "other",
            {"authorId": "x", "authorName": "X", "content": "theirs"},
        )
        posts = content.list_user_posts(self.db, "hod")
        self.assertEqual([p.content for p in posts], ["mine"])


class AnnouncementsTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_attachment_is_stored_inline(self):
        announcement = content.create_announcement(
            self.db,
            HOD,
            "Exam timetable",
            InlineAttachment(
                data_url="data:application/pdf;base64,JVBERg==",
                name="timetable.pdf",
                type="application/pdf",
            ),
        )
        stored = self.db.get(ANNOUNCEMENTS_COLLECTION, announcement.id).data
        self.assertEqual(stored["fileName"], "timetable.pdf")
        self.assertEqual(stored["fileType"], "application/pdf")

    def test_faculty_without_designation_cannot_announce(self):
        with self.assertRaises(PermissionDeniedError):
            content.create_announcement(self.db, FACULTY, "hi")

    def test_department_listing(self):
        for i, department in enumerate(["CSE", "ECE", "CSE", "CSE", "CSE"]):
            self.db.set(
                ANNOUNCEMENTS_COLLECTION,
                f"a{i}",
                {
                    "authorId": "h",
                    "authorName": "H",
                    "content": "c",
                    "authorDepartment": department,
                    "createdAt": BASE_TIME + timedelta(minutes=i),
                },
            )
        self.assertEqual(
            [a.id for a in content.latest_announcements(self.db, STUDENT)],
            ["a4", "a3", "a2"],
        )
        self.assertEqual(
            [a.id for a in content.list_announcements(self.db, STUDENT)],
            ["a4", "a3", "a2", "a0"],
        )


class EventsTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def form(self, date="2025-07-01", **overrides):
        values = dict(title="Fest", description="Annual fest", location="Ground", date=date)
        values.update(overrides)
        return EventForm(**values)

    def test_faculty_creates_event(self):
        event = content.create_event(
            self.db, FACULTY, self.form(registration_link="forms.example.com")
        )
        loaded = content.get_event(self.db, event.id)
        self.assertEqual(loaded.registration_link, "https://forms.example.com")
        self.assertEqual(loaded.author_id, "fac")

    def test_students_cannot_create_events(self):
        with self.assertRaises(PermissionDeniedError):
            content.create_event(self.db, STUDENT, self.form())

    def test_get_missing_event(self):
        with self.assertRaises(NotFoundError):
            content.get_event(self.db, "nope")

    def test_listing_orders(self):
        for i, date in enumerate(["2025-07-01", "2025-12-01", "2025-09-01", "2025-06-15"]):
            self.db.set(
                EVENTS_COLLECTION,
                f"e{i}",
                {
                    "title": f"e{i}",
                    "description": "",
                    "location": "",
                    "date": date,
                    "createdAt": BASE_TIME + timedelta(minutes=i),
                },
            )
        self.assertEqual([e.id for e in content.list_events(self.db)], ["e1", "e2", "e0", "e3"])
        self.assertEqual([e.id for e in content.latest_events(self.db)], ["e3", "e2", "e1"])
        self.assertEqual(
            [e.id for e in content.upcoming_events(self.db, "2025-07-01")], ["e0", "e2", "e1"]
        )

    def test_delete_event_author_or_admin(self):
        event = content.create_event(self.db, FACULTY, self.form())
        other = UserProfile(
            uid="other", email="o@klu.ac.in", username="O", role=Role.FACULTY
        )
        with self.assertRaises(PermissionDeniedError):
            content.delete_event(self.db, other, event.id)
        content.delete_event(self.db, ADMIN, event.id)
        with self.assertRaises(NotFoundError):
            content.get_event(self.db, event.id)


if __name__ == "__main__":
    unittest.main()
