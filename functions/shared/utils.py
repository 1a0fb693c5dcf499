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

import time
from datetime import datetime
from zoneinfo import ZoneInfo

from shared.constants import CAMPUS_TIMEZONE, EVENT_DATE_FORMAT


def today_str(now: datetime | None = None, tz_name: str = CAMPUS_TIMEZONE) -> str:
    """Returns today's date in the campus time zone as 'YYYY-MM-DD'."""
    tz = ZoneInfo(tz_name)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is not None:
        now = now.astimezone(tz)
    return now.strftime(EVENT_DATE_FORMAT)


def is_valid_event_date(value: str) -> bool:
    try:
        parsed = datetime.strptime(value, EVENT_DATE_FORMAT)
    except (TypeError, ValueError):
        return False
    # strptime accepts "2025-1-5"; stored dates must stay zero padded.
    return parsed.strftime(EVENT_DATE_FORMAT) == value


def format_link(link: str) -> str:
    """Adds an https:// scheme to links typed without one."""
    if link.startswith("http://") or link.startswith("https://"):
        return link
    return f"https://{link}"


def current_millis() -> int:
    return int(time.time() * 1000)


def storage_safe_name(filename: str) -> str:
    """Strips directory components from an uploaded file name."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return name or "file"


def timestamp_seconds(value) -> float:
    """
    Sort key for createdAt values.

    Firestore returns datetimes; documents written moments ago by another
    client may not have one yet, so missing values sort as 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    seconds = getattr(value, "seconds", None)
    if seconds is not None:
        return float(seconds)
    return 0.0
