"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

import firebase_admin
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.config import get_settings
from community import accounts
from community.errors import AuthenticationError, PermissionDeniedError
from community.identity import AuthClient, FirebaseAuthClient, InMemoryAuthClient
from community.notifications import FcmPushSender, PushSender, RecordingPushSender
from community.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from community.store import DbClient, FirestoreDbClient, InMemoryDbClient
from shared.types import UserProfile

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_auth_client: AuthClient | None = None
_push_sender: PushSender | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def _ensure_firebase_app() -> None:
    if firebase_admin._apps:
        return
    settings = get_settings()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    firebase_admin.initialize_app(options=options)
    logger.info("Initialized Firebase app for project %s", settings.firebase_project_id)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    else:
        _ensure_firebase_app()
        _db_client = FirestoreDbClient()
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            endpoint=settings.storage_endpoint,
            region=settings.storage_region,
        )
    return _storage_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    if get_settings().use_in_memory_backends:
        _auth_client = InMemoryAuthClient()
    else:
        _ensure_firebase_app()
        _auth_client = FirebaseAuthClient()
    return _auth_client


def get_push_sender() -> PushSender:
    global _push_sender
    if _push_sender:
        return _push_sender

    if get_settings().use_in_memory_backends:
        _push_sender = RecordingPushSender()
    else:
        _ensure_firebase_app()
        _push_sender = FcmPushSender()
    return _push_sender


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
) -> UserProfile:
    """Resolves `Authorization: Bearer <ID token>` to the caller's profile."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token.")
    uid = auth_client.verify_id_token(credentials.credentials)
    request.state.user_id = uid
    profile = accounts.get_profile(db, uid)
    if profile is None:
        raise PermissionDeniedError("No profile found for the signed-in user.")
    return profile
