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
from unittest.mock import patch

from assistant import campus_assistant
from community.errors import (
    InvalidInputError,
    ResourceExhaustedError,
    ServiceUnavailableError,
)
from community.store import InMemoryDbClient
from models import gemini
from shared.constants import EVENTS_COLLECTION, MAX_QUESTION_LENGTH


class CampusAssistantTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        for event_id, date in (("past", "2025-01-10"), ("fest", "2025-07-01")):
            self.db.set(
                EVENTS_COLLECTION,
                event_id,
                {
                    "title": event_id.title(),
                    "description": "",
                    "location": "Main ground",
                    "date": date,
                },
            )

    @patch.object(gemini, "call_predict")
    def test_prompt_includes_upcoming_events_only(self, mock_predict):
        mock_predict.return_value = "  The fest is on July 1st.  "

        answer = campus_assistant.answer_campus_question(
            self.db, " When is the fest? ", today="2025-06-01"
        )

        self.assertEqual(answer.answer, "The fest is on July 1st.")
        self.assertEqual(answer.question, "When is the fest?")
        prompt = mock_predict.call_args.args[0]
        self.assertIn("2025-07-01: Fest @ Main ground", prompt)
        self.assertNotIn("Past", prompt)
        self.assertIn("When is the fest?", prompt)

    def test_question_validation(self):
        with self.assertRaises(InvalidInputError):
            campus_assistant.answer_campus_question(self.db, "   ")
        with self.assertRaises(InvalidInputError):
            campus_assistant.answer_campus_question(
                self.db, "x" * (MAX_QUESTION_LENGTH + 1)
            )

    @patch.object(gemini, "call_predict")
    def test_quota_errors(self, mock_predict):
        mock_predict.side_effect = gemini.GeminiQuotaExceededException("429")
        with self.assertRaises(ResourceExhaustedError):
            campus_assistant.answer_campus_question(self.db, "hi", today="2025-06-01")

    @patch.object(gemini, "call_predict")
    def test_other_failures(self, mock_predict):
        mock_predict.side_effect = gemini.GeminiInvalidResponseException()
        with self.assertRaises(ServiceUnavailableError):
            campus_assistant.answer_campus_question(self.db, "hi", today="2025-06-01")

    def test_prompt_without_events(self):
        prompt = campus_assistant.make_prompt("hi", [], "2025-06-01")
        self.assertIn("(no upcoming events)", prompt)


if __name__ == "__main__":
    unittest.main()
