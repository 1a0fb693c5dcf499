"""
CLI helper to delete events dated before today from the community store.

Self-hosted deployments run this from cron instead of the scheduled
Cloud Function.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_db_client
from community.purge import purge_past_events
from shared.constants import MAX_BATCH_OPERATIONS
from shared.utils import is_valid_event_date, today_str

logger = logging.getLogger("purge_past_events")


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete past events")
    parser.add_argument(
        "--today",
        type=str,
        default=None,
        help="Treat this YYYY-MM-DD date as today (defaults to campus time)",
    )
    parser.add_argument(
        "-b",
        "--batch-size",
        type=int,
        default=MAX_BATCH_OPERATIONS,
        help="Deletes per batch write (max 500)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every deleted document",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.setLevel(logging.INFO)

    if args.today is not None and not is_valid_event_date(args.today):
        parser.error("--today must be a YYYY-MM-DD date")
    if not 1 <= args.batch_size <= MAX_BATCH_OPERATIONS:
        parser.error(f"--batch-size must be between 1 and {MAX_BATCH_OPERATIONS}")

    today = args.today or today_str()
    result = purge_past_events(get_db_client(), today=today, batch_size=args.batch_size)
    logger.info(
        "Deleted %d event(s) dated before %s", result.deleted, result.today
    )
    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
