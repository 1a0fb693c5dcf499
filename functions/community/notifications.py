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
"""Push notifications for new announcements, sent through Cloud Messaging."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Protocol

from firebase_admin import messaging

from community.store import DbClient, QueryFilter
from shared.constants import (
    MAX_MULTICAST_TOKENS,
    NOTIFICATION_BODY_MAX_LENGTH,
    USERS_COLLECTION,
)
from shared.types import Announcement

logger = logging.getLogger(__name__)


@dataclass
class MulticastOutcome:
    sent: int
    failed: int
    unregistered: List[str] = field(default_factory=list)


@dataclass
class NotificationResult:
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    pruned: int = 0


class PushSender(Protocol):
    def send_multicast(
        self, tokens: List[str], title: str, body: str, data: Dict[str, str]
    ) -> MulticastOutcome:
        ...


class FcmPushSender:
    """Sends through firebase_admin.messaging."""

    def __init__(self, app=None):
        self.app = app

    def send_multicast(
        self, tokens: List[str], title: str, body: str, data: Dict[str, str]
    ) -> MulticastOutcome:
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data,
        )
        response = messaging.send_each_for_multicast(message, app=self.app)
        unregistered = [
            token
            for token, result in zip(tokens, response.responses)
            if not result.success
            and isinstance(result.exception, messaging.UnregisteredError)
        ]
        return MulticastOutcome(
            sent=response.success_count,
            failed=response.failure_count,
            unregistered=unregistered,
        )


class RecordingPushSender:
    """Test double that records every multicast instead of sending it."""

    def __init__(self, unregistered=()):
        self.unregistered = set(unregistered)
        self.messages: List[dict] = []

    def send_multicast(
        self, tokens: List[str], title: str, body: str, data: Dict[str, str]
    ) -> MulticastOutcome:
        self.messages.append(
            {"tokens": list(tokens), "title": title, "body": body, "data": dict(data)}
        )
        dead = [token for token in tokens if token in self.unregistered]
        return MulticastOutcome(
            sent=len(tokens) - len(dead), failed=len(dead), unregistered=dead
        )


def excerpt(text: str, max_length: int = NOTIFICATION_BODY_MAX_LENGTH) -> str:
    text = " ".join((text or "").split())
    if len(text) <= max_length:
        return text
    return text[: max_length - 3].rstrip() + "..."


def notify_department(
    db: DbClient,
    sender: PushSender,
    announcement: Announcement,
    chunk_size: int = MAX_MULTICAST_TOKENS,
) -> NotificationResult:
    """
    Pushes a new announcement to everyone in the author's department.

    The author is skipped. Tokens Cloud Messaging reports as unregistered are
    removed from their profile. A failing chunk is logged and the rest still
    go out.
    """
    result = NotificationResult()
    if not announcement.author_department:
        logger.info("Announcement %s has no department; nothing to send", announcement.id)
        return result

    owners: Dict[str, str] = {}
    members = db.query(
        USERS_COLLECTION,
        [QueryFilter("department", "==", announcement.author_department)],
    )
    for member in members:
        if member.id == announcement.author_id:
            continue
        result.recipients += 1
        for token in member.data.get("fcmTokens") or []:
            owners.setdefault(token, member.id)

    tokens = list(owners)
    if not tokens:
        logger.info("No device tokens in %s", announcement.author_department)
        return result

    title = f"New announcement from {announcement.author_name}"
    body = excerpt(announcement.content)
    data = {"type": "announcement", "announcementId": announcement.id}

    stale: Dict[str, List[str]] = defaultdict(list)
    for start in range(0, len(tokens), chunk_size):
        chunk = tokens[start : start + chunk_size]
        try:
            outcome = sender.send_multicast(chunk, title, body, data)
        except Exception as e:
            logger.exception("Sending %d notifications failed: %s", len(chunk), e)
            result.failed += len(chunk)
            continue
        result.sent += outcome.sent
        result.failed += outcome.failed
        for token in outcome.unregistered:
            stale[owners[token]].append(token)

    for uid, dead_tokens in stale.items():
        try:
            db.array_remove(USERS_COLLECTION, uid, "fcmTokens", dead_tokens)
        except Exception as e:
            logger.warning("Could not prune tokens for %s: %s", uid, e)
            continue
        result.pruned += len(dead_tokens)

    logger.info(
        "Announcement %s: sent %d, failed %d, pruned %d",
        announcement.id,
        result.sent,
        result.failed,
        result.pruned,
    )
    return result
