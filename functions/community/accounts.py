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
"""User accounts: the auth account plus the profile document at users/{uid}."""

import logging
from typing import List, Optional

from google.cloud.firestore_v1 import DELETE_FIELD

from community import validation, visibility
from community.errors import NotFoundError, PermissionDeniedError
from community.identity import AuthClient
from community.store import DbClient, from_document, to_document
from shared.api import AccountForm, AccountUpdate
from shared.constants import ALLOWED_EMAIL_DOMAIN, USERS_COLLECTION
from shared.types import Role, UserProfile

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("username", "email", "department", "regno", "staff_id")


def _require_admin(actor: Optional[UserProfile]) -> None:
    if not visibility.can_manage_users(actor):
        raise PermissionDeniedError("Only admins can manage users.")


def get_profile(db: DbClient, uid: str) -> Optional[UserProfile]:
    doc = db.get(USERS_COLLECTION, uid)
    if doc is None:
        return None
    doc.data.setdefault("uid", uid)
    return from_document(UserProfile, doc)


def require_profile(db: DbClient, uid: str) -> UserProfile:
    profile = get_profile(db, uid)
    if profile is None:
        raise NotFoundError("User profile not found.")
    return profile


def create_account(
    db: DbClient,
    auth_client: AuthClient,
    form: AccountForm,
    actor: Optional[UserProfile] = None,
    domain: str = ALLOWED_EMAIL_DOMAIN,
) -> UserProfile:
    """
    Creates the auth account and its profile document.

    Without an `actor` this is a self sign-up. With one, the actor must be an
    admin and the looser admin form rules apply. When the profile write fails
    the new auth account is deleted so no orphan login is left behind.
    """
    if actor is not None:
        _require_admin(actor)
    form = validation.validate_account_form(form, admin=actor is not None, domain=domain)

    uid = auth_client.create_user(form.email, form.password, form.username)
    profile = UserProfile(
        uid=uid,
        email=form.email,
        username=form.username,
        department=form.department,
        role=form.role,
        designation=form.designation,
        regno=form.regno,
        staff_id=form.staff_id,
        gender=form.gender,
    )
    try:
        db.set(USERS_COLLECTION, uid, to_document(profile))
    except Exception:
        logger.exception("Writing profile for %s failed; removing auth account", uid)
        try:
            auth_client.delete_user(uid)
        except NotFoundError:
            pass
        raise
    logger.info("Created %s account %s", profile.role, uid)
    return profile


def update_account(
    db: DbClient, actor: Optional[UserProfile], uid: str, update: AccountUpdate
) -> UserProfile:
    """Admin edit. Switching role swaps which id field (regno/staffId) is kept."""
    _require_admin(actor)
    update = validation.validate_account_update(update)
    require_profile(db, uid)

    data = {
        "username": update.username,
        "department": update.department,
        "role": str(update.role),
    }
    if update.role == Role.STUDENT:
        data["regno"] = update.regno
        data["staffId"] = DELETE_FIELD
    else:
        data["staffId"] = update.staff_id
        data["regno"] = DELETE_FIELD
    db.update(USERS_COLLECTION, uid, data)
    return require_profile(db, uid)


def delete_account(
    db: DbClient, auth_client: AuthClient, actor: Optional[UserProfile], uid: str
) -> None:
    _require_admin(actor)
    db.delete(USERS_COLLECTION, uid)
    try:
        auth_client.delete_user(uid)
    except NotFoundError:
        logger.info("Auth account %s was already gone", uid)
    logger.info("Deleted account %s", uid)


def list_users(db: DbClient, actor: Optional[UserProfile]) -> List[UserProfile]:
    _require_admin(actor)
    users = []
    for doc in db.query(USERS_COLLECTION):
        doc.data.setdefault("uid", doc.id)
        users.append(from_document(UserProfile, doc))
    return sorted(users, key=lambda u: u.username.lower())


def search_users(users: List[UserProfile], term: str) -> List[UserProfile]:
    """Case-insensitive substring match over the searchable profile fields."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(users)
    return [
        user
        for user in users
        if any(needle in (getattr(user, f) or "").lower() for f in SEARCH_FIELDS)
    ]


def register_push_token(db: DbClient, uid: str, token: str) -> bool:
    """Adds a device token to the caller's profile. Returns False if present."""
    token = validation.require_text(token, "token", "Token")
    profile = require_profile(db, uid)
    if token in profile.fcm_tokens:
        return False
    db.array_union(USERS_COLLECTION, uid, "fcmTokens", [token])
    return True


def remove_push_tokens(db: DbClient, uid: str, tokens: List[str]) -> None:
    db.array_remove(USERS_COLLECTION, uid, "fcmTokens", list(tokens))
