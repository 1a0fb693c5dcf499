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
# Cloud functions for the campus community app - scheduled cleanup, account
# management, push notifications and the campus assistant.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
from dataclasses import asdict

# Third-party library imports
from dacite import DaciteError, from_dict
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, logger, options, scheduler_fn
from firebase_functions.firestore_fn import (
    on_document_created,
    Event,
    DocumentSnapshot,
)

# Local application imports
from assistant import campus_assistant
from community import accounts, notifications, purge
from community.errors import (
    AlreadyExistsError,
    AuthenticationError,
    CommunityError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    ResourceExhaustedError,
    ServiceUnavailableError,
)
from community.identity import AuthClient, FirebaseAuthClient
from community.notifications import FcmPushSender, PushSender
from community.store import DACITE_CONFIG, DbClient, FirestoreDbClient, StoredDocument, from_document
from shared.api import (
    AccountForm,
    CreateUserAccountResult,
    DeleteUserAccountResult,
    RegisterPushTokenResult,
)
from shared.constants import (
    ANNOUNCEMENTS_COLLECTION,
    CAMPUS_TIMEZONE,
    PURGE_SCHEDULE,
)
from shared.json_utils import convert_keys
from shared.types import Announcement, UserProfile

initialize_app()

ERROR_CODES = {
    InvalidInputError: https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
    PermissionDeniedError: https_fn.FunctionsErrorCode.PERMISSION_DENIED,
    NotFoundError: https_fn.FunctionsErrorCode.NOT_FOUND,
    AlreadyExistsError: https_fn.FunctionsErrorCode.ALREADY_EXISTS,
    AuthenticationError: https_fn.FunctionsErrorCode.UNAUTHENTICATED,
    ResourceExhaustedError: https_fn.FunctionsErrorCode.RESOURCE_EXHAUSTED,
    ServiceUnavailableError: https_fn.FunctionsErrorCode.UNAVAILABLE,
}


def _db() -> DbClient:
    return FirestoreDbClient(firestore.client())


def _auth_client() -> AuthClient:
    return FirebaseAuthClient()


def _push_sender() -> PushSender:
    return FcmPushSender()


def _to_https_error(e: CommunityError) -> https_fn.HttpsError:
    code = ERROR_CODES.get(type(e), https_fn.FunctionsErrorCode.INTERNAL)
    return https_fn.HttpsError(code, e.message)


def _caller_uid(req: https_fn.CallableRequest) -> str:
    if req.auth is None:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.UNAUTHENTICATED,
            "You must be signed in.",
        )
    return req.auth.uid


def _caller_profile(db: DbClient, uid: str) -> UserProfile:
    profile = accounts.get_profile(db, uid)
    if profile is None:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.PERMISSION_DENIED,
            "No profile found for the signed-in user.",
        )
    return profile


# Scheduled cleanup


@scheduler_fn.on_schedule(
    schedule=PURGE_SCHEDULE,
    timezone=scheduler_fn.Timezone(CAMPUS_TIMEZONE),
    memory=options.MemoryOption.MB_256,
)
def auto_delete_past_events(event: scheduler_fn.ScheduledEvent) -> None:
    """Deletes events dated before today. Runs every 24 hours."""
    run_purge(_db())


def run_purge(db: DbClient) -> purge.PurgeResult:
    logger.info("Starting past events cleanup task.")
    result = purge.purge_past_events(db)
    if not result.succeeded:
        logger.error(f"Past events cleanup failed for {result.today}.")
    else:
        logger.info(f"Past events cleanup removed {result.deleted} event(s).")
    return result


# Accounts


def create_user_account_for(
    db: DbClient, auth_client: AuthClient, caller_uid: str, data: dict
) -> CreateUserAccountResult:
    caller = _caller_profile(db, caller_uid)
    try:
        form = from_dict(
            data_class=AccountForm,
            data=convert_keys(data or {}, "camel_to_snake"),
            config=DACITE_CONFIG,
        )
    except (DaciteError, ValueError) as e:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            f"Invalid account details: {e}",
        )
    try:
        profile = accounts.create_account(db, auth_client, form, actor=caller)
    except CommunityError as e:
        raise _to_https_error(e) from e
    logger.info(f"Admin {caller_uid} created account {profile.uid}")
    return CreateUserAccountResult(uid=profile.uid)


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def create_user_account(req: https_fn.CallableRequest) -> dict:
    """
    Creates an auth account and profile on behalf of an admin.

    Args:
        req (https_fn.CallableRequest): The request, containing the account form.

    Returns:
        A dictionary representation of the CreateUserAccountResult object.
    """
    uid = _caller_uid(req)
    result = create_user_account_for(_db(), _auth_client(), uid, req.data)
    return convert_keys(asdict(result), "snake_to_camel")


def delete_user_account_for(
    db: DbClient, auth_client: AuthClient, caller_uid: str, data: dict
) -> DeleteUserAccountResult:
    target_uid = (data or {}).get("uid")
    if not target_uid or not isinstance(target_uid, str):
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            "Must specify the 'uid' of the account to delete.",
        )
    if target_uid == caller_uid:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.FAILED_PRECONDITION,
            "Admins cannot delete their own account.",
        )
    caller = _caller_profile(db, caller_uid)
    try:
        accounts.delete_account(db, auth_client, caller, target_uid)
    except CommunityError as e:
        raise _to_https_error(e) from e
    return DeleteUserAccountResult(uid=target_uid)


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def delete_user_account(req: https_fn.CallableRequest) -> dict:
    uid = _caller_uid(req)
    result = delete_user_account_for(_db(), _auth_client(), uid, req.data)
    return convert_keys(asdict(result), "snake_to_camel")


def register_push_token_for(
    db: DbClient, caller_uid: str, data: dict
) -> RegisterPushTokenResult:
    token = (data or {}).get("token")
    if not isinstance(token, str):
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            "Must specify a 'token' string.",
        )
    try:
        added = accounts.register_push_token(db, caller_uid, token)
    except CommunityError as e:
        raise _to_https_error(e) from e
    return RegisterPushTokenResult(added=added)


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def register_push_token(req: https_fn.CallableRequest) -> dict:
    uid = _caller_uid(req)
    result = register_push_token_for(_db(), uid, req.data)
    return convert_keys(asdict(result), "snake_to_camel")


# Push notifications


def handle_new_announcement(
    db: DbClient, sender: PushSender, announcement_id: str, data: dict
) -> notifications.NotificationResult:
    announcement = from_document(
        Announcement, StoredDocument(id=announcement_id, data=dict(data))
    )
    return notifications.notify_department(db, sender, announcement)


@on_document_created(
    document=ANNOUNCEMENTS_COLLECTION + "/{announcementId}",
    memory=options.MemoryOption.MB_256,
)
def notify_department_on_announcement(event: Event[DocumentSnapshot | None]) -> None:
    """Pushes a new announcement to the author's department."""
    if event.data is None:
        return
    announcement_id = event.params["announcementId"]
    try:
        handle_new_announcement(
            _db(), _push_sender(), announcement_id, event.data.to_dict() or {}
        )
    except Exception as e:
        logger.error(f"Notifying for announcement {announcement_id} failed: {e}")


# Campus assistant


@https_fn.on_call(timeout_sec=120, memory=options.MemoryOption.MB_512)
def answer_campus_question(req: https_fn.CallableRequest) -> dict:
    """
    Answers a campus question using Gemini and the upcoming events.

    Args:
        req (https_fn.CallableRequest): The request, containing the question.

    Returns:
        A dictionary representation of the CampusAnswer object.
    """
    _caller_uid(req)
    question = req.data.get("question")
    api_key = req.data.get("apiKey")

    if not isinstance(question, str):
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            "Must specify a 'question' string.",
        )

    try:
        answer = campus_assistant.answer_campus_question(_db(), question, api_key)
    except CommunityError as e:
        raise _to_https_error(e) from e

    return convert_keys(asdict(answer), "snake_to_camel")
