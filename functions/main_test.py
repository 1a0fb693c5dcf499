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

# Standard library imports
import os
import unittest
from unittest.mock import patch

# Third-party library imports
from functions_framework import create_app
from firebase_functions import https_fn

# Local application imports
# This patch must be applied before importing 'main'
with patch("firebase_admin.initialize_app"):
    from main import (
        create_user_account_for,
        delete_user_account_for,
        handle_new_announcement,
        register_push_token_for,
        run_purge,
    )
import main_testing_utils
from community import accounts
from community.identity import InMemoryAuthClient
from community.notifications import RecordingPushSender
from community.purge import PurgeResult
from shared.constants import EVENTS_COLLECTION, USERS_COLLECTION

# functions-framework resolves the source path against the working directory.
MAIN_SOURCE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "main.py")


# Callable ID tokens are checked through firebase_admin.auth.
SIGNED_IN = {"uid": "student-1"}


class TestMainAnswerCampusQuestion(unittest.TestCase):

    @patch("firebase_admin.initialize_app")
    def setUp(self, initialize_app_mock):
        # Create a test client for the function using functions-framework.
        self.client = create_app("answer_campus_question", MAIN_SOURCE).test_client()

    def ask(self, data):
        return self.client.post(
            "/",
            json={"data": data},
            headers={"Authorization": "Bearer s1-token"},
        )

    @patch("firebase_admin.auth.verify_id_token", return_value=SIGNED_IN)
    @patch("assistant.campus_assistant.gemini.call_predict")
    @patch("main._db")
    def test_answer_campus_question(self, mock_db, mock_predict, mock_verify):
        mock_db.return_value = main_testing_utils.create_seeded_db()
        mock_predict.return_value = "The fest is on January 15th."

        response = self.ask({"question": "When is the fest?"})

        self.assertEqual(
            response.status_code,
            200,
            f"Request failed with status {response.status_code}. Body: {response.get_data(as_text=True)}",
        )
        # Note: @on_call wraps successful responses in a `result` key.
        result = response.get_json()["result"]
        self.assertEqual(result["question"], "When is the fest?")
        self.assertEqual(result["answer"], "The fest is on January 15th.")
        self.assertIn("timestamp", result)
        self.assertIn("Fest @ Main ground", mock_predict.call_args.args[0])
        mock_verify.assert_called_once_with("s1-token")

    @patch("firebase_admin.auth.verify_id_token", return_value=SIGNED_IN)
    @patch("main._db")
    def test_missing_question(self, mock_db, mock_verify):
        mock_db.return_value = main_testing_utils.create_seeded_db()
        response = self.ask({})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"]["status"], "INVALID_ARGUMENT")

    @patch("firebase_admin.auth.verify_id_token", return_value=SIGNED_IN)
    @patch("assistant.campus_assistant.gemini.call_predict")
    @patch("main._db")
    def test_quota_exceeded(self, mock_db, mock_predict, mock_verify):
        from models.gemini import GeminiQuotaExceededException

        mock_db.return_value = main_testing_utils.create_seeded_db()
        mock_predict.side_effect = GeminiQuotaExceededException("429")
        response = self.ask({"question": "hi"})
        self.assertEqual(response.get_json()["error"]["status"], "RESOURCE_EXHAUSTED")

    @patch("assistant.campus_assistant.gemini.call_predict")
    @patch("main._db")
    def test_signed_out_caller_is_rejected(self, mock_db, mock_predict):
        response = self.client.post("/", json={"data": {"question": "hi"}})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"]["status"], "UNAUTHENTICATED")
        mock_db.assert_not_called()
        mock_predict.assert_not_called()


class TestMainCallablesRequireAuth(unittest.TestCase):

    @patch("firebase_admin.initialize_app")
    def test_unauthenticated_calls_are_rejected(self, initialize_app_mock):
        for name, payload in (
            ("create_user_account", {"email": "x@klu.ac.in"}),
            ("delete_user_account", {"uid": "student-1"}),
            ("register_push_token", {"token": "abc"}),
            ("answer_campus_question", {"question": "hi"}),
        ):
            client = create_app(name, MAIN_SOURCE).test_client()
            response = client.post("/", json={"data": payload})
            self.assertEqual(response.status_code, 401, name)
            self.assertEqual(
                response.get_json()["error"]["status"], "UNAUTHENTICATED", name
            )


class TestMainAccounts(unittest.TestCase):

    def setUp(self):
        self.db = main_testing_utils.create_seeded_db()
        self.auth = InMemoryAuthClient()

    def test_admin_creates_account(self):
        result = create_user_account_for(
            self.db,
            self.auth,
            "admin-uid",
            {
                "email": "new.faculty@klu.ac.in",
                "password": "secret1",
                "username": "New Faculty",
                "department": "ECE",
                "role": "faculty",
                "staffId": "F-100",
                "designation": "dean",
            },
        )
        profile = accounts.get_profile(self.db, result.uid)
        self.assertEqual(profile.staff_id, "F-100")
        self.assertEqual(profile.designation, "dean")
        self.assertIn(result.uid, self.auth.users)

    def test_non_admin_is_denied(self):
        with self.assertRaises(https_fn.HttpsError) as cm:
            create_user_account_for(
                self.db,
                self.auth,
                "hod-uid",
                {
                    "email": "x@klu.ac.in",
                    "password": "secret1",
                    "username": "X",
                    "department": "CSE",
                    "role": "student",
                    "regno": "1",
                },
            )
        self.assertEqual(cm.exception.code, https_fn.FunctionsErrorCode.PERMISSION_DENIED)

    def test_missing_fields(self):
        with self.assertRaises(https_fn.HttpsError) as cm:
            create_user_account_for(self.db, self.auth, "admin-uid", {"email": "x@klu.ac.in"})
        self.assertEqual(cm.exception.code, https_fn.FunctionsErrorCode.INVALID_ARGUMENT)

    def test_duplicate_email(self):
        payload = {
            "email": "dup@klu.ac.in",
            "password": "secret1",
            "username": "Dup",
            "department": "CSE",
            "role": "student",
            "regno": "1",
        }
        create_user_account_for(self.db, self.auth, "admin-uid", payload)
        with self.assertRaises(https_fn.HttpsError) as cm:
            create_user_account_for(self.db, self.auth, "admin-uid", payload)
        self.assertEqual(cm.exception.code, https_fn.FunctionsErrorCode.ALREADY_EXISTS)

    def test_delete_account(self):
        result = delete_user_account_for(
            self.db, self.auth, "admin-uid", {"uid": "student-1"}
        )
        self.assertEqual(result.uid, "student-1")
        self.assertIsNone(self.db.get(USERS_COLLECTION, "student-1"))

    def test_admin_cannot_delete_self(self):
        with self.assertRaises(https_fn.HttpsError) as cm:
            delete_user_account_for(self.db, self.auth, "admin-uid", {"uid": "admin-uid"})
        self.assertEqual(cm.exception.code, https_fn.FunctionsErrorCode.FAILED_PRECONDITION)

    def test_register_push_token(self):
        first = register_push_token_for(self.db, "student-1", {"token": "new-token"})
        again = register_push_token_for(self.db, "student-1", {"token": "new-token"})
        self.assertTrue(first.added)
        self.assertFalse(again.added)
        self.assertEqual(
            self.db.get(USERS_COLLECTION, "student-1").data["fcmTokens"],
            ["s1-token", "new-token"],
        )

    def test_register_push_token_without_profile(self):
        with self.assertRaises(https_fn.HttpsError) as cm:
            register_push_token_for(self.db, "ghost", {"token": "t"})
        self.assertEqual(cm.exception.code, https_fn.FunctionsErrorCode.NOT_FOUND)


class TestMainAnnouncementTrigger(unittest.TestCase):

    def test_notifies_department_members(self):
        db = main_testing_utils.create_seeded_db()
        sender = RecordingPushSender(unregistered=["s2-token"])

        result = handle_new_announcement(
            db,
            sender,
            "ann-1",
            {
                "authorId": "hod-uid",
                "authorName": "Hod Uid",
                "authorDepartment": "CSE",
                "content": "Lab exam moved to Monday.",
            },
        )

        self.assertEqual(sorted(sender.messages[0]["tokens"]), ["s1-token", "s2-token"])
        self.assertEqual(result.pruned, 1)
        self.assertEqual(db.get(USERS_COLLECTION, "student-2").data["fcmTokens"], [])


class TestMainPurge(unittest.TestCase):

    @patch("main.purge.purge_past_events")
    def test_run_purge_logs_result(self, mock_purge):
        mock_purge.return_value = PurgeResult(today="2025-06-01", deleted=3)
        db = main_testing_utils.create_seeded_db()
        self.assertEqual(run_purge(db).deleted, 3)
        mock_purge.assert_called_once_with(db)

    def test_run_purge_keeps_future_events(self):
        db = main_testing_utils.create_seeded_db()
        db.set(
            EVENTS_COLLECTION,
            "old",
            {"title": "Old", "description": "", "location": "", "date": "2000-01-01"},
        )
        result = run_purge(db)
        self.assertEqual(result.deleted, 1)
        self.assertIsNotNone(db.get(EVENTS_COLLECTION, "fest"))


if __name__ == "__main__":
    unittest.main()
