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

import logging
from dataclasses import dataclass
from typing import Optional

from community.store import DbClient, QueryFilter
from shared.constants import EVENTS_COLLECTION, MAX_BATCH_OPERATIONS
from shared.utils import today_str

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    today: str
    deleted: int
    succeeded: bool = True


def purge_past_events(
    db: DbClient,
    today: Optional[str] = None,
    batch_size: int = MAX_BATCH_OPERATIONS,
) -> PurgeResult:
    """
    Deletes every event dated before `today` ("YYYY-MM-DD", campus time).

    Event dates are zero-padded strings, so a lexicographic `<` is a date
    comparison. Failures are logged and reported in the result, never raised.
    """
    if today is None:
        today = today_str()
    logger.info("Purging events dated before %s", today)
    try:
        deleted = db.delete_where(
            EVENTS_COLLECTION,
            [QueryFilter("date", "<", today)],
            batch_size=batch_size,
        )
    except Exception as e:
        logger.exception("Error deleting past events: %s", e)
        return PurgeResult(today=today, deleted=0, succeeded=False)

    if deleted == 0:
        logger.info("No past events to delete.")
    else:
        logger.info("Successfully deleted %d past event(s).", deleted)
    return PurgeResult(today=today, deleted=deleted)
