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
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions

from community.purge import purge_past_events
from community.store import FirestoreDbClient, InMemoryDbClient
from shared.constants import EVENTS_COLLECTION


def add_event(db, event_id, date):
    db.set(
        EVENTS_COLLECTION,
        event_id,
        {"title": event_id, "description": "", "location": "", "date": date},
    )


class PurgePastEventsTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_deletes_only_past_events(self):
        add_event(self.db, "old", "2025-05-31")
        add_event(self.db, "today", "2025-06-01")
        add_event(self.db, "future", "2025-12-25")

        result = purge_past_events(self.db, today="2025-06-01")

        self.assertEqual(result.deleted, 1)
        self.assertTrue(result.succeeded)
        self.assertIsNone(self.db.get(EVENTS_COLLECTION, "old"))
        self.assertIsNotNone(self.db.get(EVENTS_COLLECTION, "today"))
        self.assertIsNotNone(self.db.get(EVENTS_COLLECTION, "future"))

    def test_nothing_to_delete(self):
        add_event(self.db, "future", "2030-01-01")
        result = purge_past_events(self.db, today="2025-06-01")
        self.assertEqual(result.deleted, 0)

    def test_events_without_date_are_kept(self):
        self.db.set(EVENTS_COLLECTION, "undated", {"title": "x"})
        purge_past_events(self.db, today="2025-06-01")
        self.assertIsNotNone(self.db.get(EVENTS_COLLECTION, "undated"))

    def test_store_failure_is_swallowed(self):
        db = MagicMock()
        db.delete_where.side_effect = RuntimeError("boom")
        result = purge_past_events(db, today="2025-06-01")
        self.assertFalse(result.succeeded)
        self.assertEqual(result.deleted, 0)


class FirestoreBatchDeleteTest(unittest.TestCase):
    def make_client(self, count, failing_batches=()):
        client = MagicMock()
        snapshots = []
        for i in range(count):
            snapshot = MagicMock()
            snapshot.id = f"event-{i}"
            snapshots.append(snapshot)
        query = client.collection.return_value.where.return_value
        query.stream.return_value = snapshots

        batches = []

        def make_batch():
            batch = MagicMock()
            if len(batches) in failing_batches:
                batch.commit.side_effect = google_exceptions.InternalServerError("down")
            batches.append(batch)
            return batch

        client.batch.side_effect = make_batch
        return client, batches

    def test_batches_are_capped(self):
        client, batches = self.make_client(1001)
        deleted = purge_past_events(FirestoreDbClient(client), today="2025-06-01").deleted
        self.assertEqual(deleted, 1001)
        self.assertEqual([b.delete.call_count for b in batches], [500, 500, 1])

    def test_failed_batch_is_skipped(self):
        client, batches = self.make_client(600, failing_batches=(0,))
        result = purge_past_events(FirestoreDbClient(client), today="2025-06-01")
        self.assertEqual(result.deleted, 100)
        self.assertEqual(len(batches), 2)
        batches[1].commit.assert_called_once()


if __name__ == "__main__":
    unittest.main()
