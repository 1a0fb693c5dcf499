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
from unittest.mock import MagicMock, patch

from firebase_admin import messaging

from community import notifications
from community.store import InMemoryDbClient
from shared.constants import USERS_COLLECTION
from shared.types import Announcement


def add_user(db, uid, department, tokens):
    db.set(
        USERS_COLLECTION,
        uid,
        {
            "uid": uid,
            "email": f"{uid}@klu.ac.in",
            "username": uid,
            "department": department,
            "fcmTokens": tokens,
        },
    )


ANNOUNCEMENT = Announcement(
    id="ann-1",
    author_id="hod",
    author_name="Dr. Hod",
    content="Department meeting at 4pm in the seminar hall.",
    author_department="CSE",
)


class NotifyDepartmentTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        add_user(self.db, "hod", "CSE", ["hod-phone"])
        add_user(self.db, "stu1", "CSE", ["t1", "t2"])
        add_user(self.db, "stu2", "CSE", ["t3"])
        add_user(self.db, "ece", "ECE", ["t4"])

    def test_sends_to_department_except_author(self):
        sender = notifications.RecordingPushSender()
        result = notifications.notify_department(self.db, sender, ANNOUNCEMENT)

        self.assertEqual(len(sender.messages), 1)
        message = sender.messages[0]
        self.assertEqual(sorted(message["tokens"]), ["t1", "t2", "t3"])
        self.assertEqual(message["title"], "New announcement from Dr. Hod")
        self.assertEqual(message["data"]["announcementId"], "ann-1")
        self.assertEqual(result.recipients, 2)
        self.assertEqual(result.sent, 3)

    def test_chunks_tokens(self):
        sender = notifications.RecordingPushSender()
        notifications.notify_department(self.db, sender, ANNOUNCEMENT, chunk_size=2)
        self.assertEqual([len(m["tokens"]) for m in sender.messages], [2, 1])

    def test_prunes_unregistered_tokens(self):
        sender = notifications.RecordingPushSender(unregistered=["t2"])
        result = notifications.notify_department(self.db, sender, ANNOUNCEMENT)
        self.assertEqual(result.pruned, 1)
        self.assertEqual(self.db.get(USERS_COLLECTION, "stu1").data["fcmTokens"], ["t1"])

    def test_failing_chunk_does_not_stop_the_rest(self):
        sender = MagicMock()
        sender.send_multicast.side_effect = [
            RuntimeError("fcm down"),
            notifications.MulticastOutcome(sent=1, failed=0),
        ]
        result = notifications.notify_department(
            self.db, sender, ANNOUNCEMENT, chunk_size=2
        )
        self.assertEqual(result.failed, 2)
        self.assertEqual(result.sent, 1)

    def test_no_department(self):
        sender = notifications.RecordingPushSender()
        announcement = Announcement(id="x", author_id="a", author_name="A", content="c")
        result = notifications.notify_department(self.db, sender, announcement)
        self.assertEqual(result.recipients, 0)
        self.assertEqual(sender.messages, [])

    def test_excerpt(self):
        self.assertEqual(notifications.excerpt("a  b\nc"), "a b c")
        long_text = "word " * 100
        short = notifications.excerpt(long_text, 20)
        self.assertTrue(short.endswith("..."))
        self.assertLessEqual(len(short), 20)


class FcmPushSenderTest(unittest.TestCase):
    @patch("community.notifications.messaging.send_each_for_multicast")
    def test_reports_unregistered_tokens(self, mock_send):
        ok = MagicMock(success=True, exception=None)
        gone = MagicMock(
            success=False, exception=messaging.UnregisteredError("gone")
        )
        mock_send.return_value = MagicMock(
            success_count=1, failure_count=1, responses=[ok, gone]
        )

        outcome = notifications.FcmPushSender().send_multicast(
            ["good", "stale"], "title", "body", {"type": "announcement"}
        )

        self.assertEqual(outcome.unregistered, ["stale"])
        message = mock_send.call_args.args[0]
        self.assertEqual(message.tokens, ["good", "stale"])


if __name__ == "__main__":
    unittest.main()
