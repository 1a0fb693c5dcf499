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
from typing import List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from community import validation, visibility
from community.errors import NotFoundError, PermissionDeniedError
from community.storage import StorageClient
from community.store import DbClient, from_document, to_document
from shared.api import ClubForm, FileUpload
from shared.constants import CLUB_PICTURES_STORAGE_PREFIX, CLUBS_COLLECTION
from shared.types import Club, UserProfile
from shared.utils import current_millis, storage_safe_name

logger = logging.getLogger(__name__)


def club_picture_path(filename: str, millis: Optional[int] = None) -> str:
    if millis is None:
        millis = current_millis()
    return f"{CLUB_PICTURES_STORAGE_PREFIX}/{millis}_{storage_safe_name(filename)}"


def list_clubs(db: DbClient) -> List[Club]:
    clubs = [from_document(Club, doc) for doc in db.query(CLUBS_COLLECTION)]
    return sorted(clubs, key=lambda club: club.name.lower())


def create_club(
    db: DbClient,
    storage: StorageClient,
    actor: Optional[UserProfile],
    form: ClubForm,
    picture: Optional[FileUpload] = None,
) -> Club:
    if not visibility.can_manage_clubs(actor):
        raise PermissionDeniedError("Only admins can add clubs.")
    form = validation.validate_club(form)

    club = Club(id="", name=form.name, description=form.description, officials=form.officials)
    if picture is not None and picture.content:
        club.profile_pic_path = club_picture_path(picture.filename)
        storage.upload_bytes(club.profile_pic_path, picture.content, picture.content_type)

    data = to_document(club)
    data["createdAt"] = SERVER_TIMESTAMP
    club.id = db.add(CLUBS_COLLECTION, data)
    logger.info("Created club %s (%s)", club.id, club.name)
    return club


def delete_club(
    db: DbClient, storage: StorageClient, actor: Optional[UserProfile], club_id: str
) -> None:
    if not visibility.can_manage_clubs(actor):
        raise PermissionDeniedError("Only admins can remove clubs.")
    doc = db.get(CLUBS_COLLECTION, club_id)
    if doc is None:
        raise NotFoundError("Club not found.")
    db.delete(CLUBS_COLLECTION, club_id)
    picture_path = doc.data.get("profilePicPath")
    if picture_path:
        storage.delete(picture_path)


def update_club(
    db: DbClient,
    storage: StorageClient,
    actor: Optional[UserProfile],
    club_id: str,
    form: ClubForm,
    picture: Optional[FileUpload] = None,
) -> Club:
    """
    Edits a club's details and optionally swaps its picture.

    The previous picture is deleted once the document points at the new one.
    """
    if not visibility.can_manage_clubs(actor):
        raise PermissionDeniedError("Only admins can edit clubs.")
    form = validation.validate_club(form)
    doc = db.get(CLUBS_COLLECTION, club_id)
    if doc is None:
        raise NotFoundError("Club not found.")

    old_path = None
    update = {
        "name": form.name,
        "description": form.description,
        "officials": to_document(form.officials),
    }
    if picture is not None and picture.content:
        new_path = club_picture_path(picture.filename)
        storage.upload_bytes(new_path, picture.content, picture.content_type)
        update["profilePicPath"] = new_path
        old_path = doc.data.get("profilePicPath")
        if old_path == new_path:
            old_path = None
    db.update(CLUBS_COLLECTION, club_id, update)
    logger.info("Updated club %s (%s)", club_id, form.name)

    if old_path:
        storage.delete(old_path)
    return from_document(Club, db.get(CLUBS_COLLECTION, club_id))
