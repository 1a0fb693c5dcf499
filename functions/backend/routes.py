"""
HTTP routes for the campus community API.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import asdict
from typing import Iterator

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Query,
    Response,
    UploadFile,
)
from fastapi.responses import StreamingResponse

from assistant import campus_assistant
from backend.config import Settings, get_settings
from backend.dependencies import (
    get_auth_client,
    get_current_user,
    get_db_client,
    get_push_sender,
    get_storage_client,
)
from backend.schemas import (
    AnnouncementCreateRequest,
    AnnouncementListResponse,
    AnnouncementResponse,
    AnswerResponse,
    ClubListResponse,
    ClubResponse,
    CreateUserRequest,
    EventCreateRequest,
    EventListResponse,
    EventResponse,
    FeedSnapshotResponse,
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PurgeResponse,
    PushTokenRequest,
    PushTokenResponse,
    QuestionRequest,
    QuickLinkListResponse,
    QuickLinkRequest,
    QuickLinkResponse,
    ResourceListResponse,
    ResourceResponse,
    SignUpRequest,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)
from community import accounts, clubs, content, notifications, purge, resources, visibility
from community.errors import InvalidInputError, PermissionDeniedError
from community.identity import AuthClient
from community.live_feed import FeedSnapshot, LiveFeed
from community.notifications import PushSender
from community.storage import StorageClient
from community.store import DbClient
from shared.api import (
    AccountForm,
    AccountUpdate,
    ClubForm,
    EventForm,
    FileUpload,
    QuickLinkForm,
    ResourceDownload,
    ResourceForm,
)
from shared.types import ClubOfficials, InlineAttachment, UserProfile

logger = logging.getLogger(__name__)

router = APIRouter()

FEED_HEARTBEAT_SECONDS = 15.0


async def _read_upload(file: UploadFile | None) -> FileUpload | None:
    if file is None or not file.filename:
        return None
    return FileUpload(
        filename=file.filename,
        content=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )


def _attachment(payload) -> InlineAttachment | None:
    if payload is None:
        return None
    return InlineAttachment(data_url=payload.data_url, name=payload.name, type=payload.type)


def _resource_response(item: ResourceDownload) -> ResourceResponse:
    return ResourceResponse(**asdict(item.resource), download_url=item.download_url)


# Accounts


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
def sign_up(
    payload: SignUpRequest,
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
    settings: Settings = Depends(get_settings),
):
    """
    Self sign-up for students and faculty.
    """
    form = AccountForm(**payload.model_dump())
    profile = accounts.create_account(
        db, auth_client, form, domain=settings.allowed_email_domain
    )
    return UserResponse.model_validate(profile)


@router.get("/me", response_model=UserResponse)
def get_me(user: UserProfile = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.post("/me/push-tokens", response_model=PushTokenResponse)
def register_push_token(
    payload: PushTokenRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    added = accounts.register_push_token(db, user.uid, payload.token)
    return PushTokenResponse(added=added)


@router.get("/me/activity", response_model=PostListResponse)
def my_activity(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    posts = content.list_user_posts(db, user.uid)
    return PostListResponse(posts=[PostResponse.model_validate(p) for p in posts])


@router.get("/users", response_model=UserListResponse)
def list_users(
    q: str | None = Query(None, description="Filter by name, email, department or id"),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    users = accounts.list_users(db, user)
    if q:
        users = accounts.search_users(users, q)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    payload: CreateUserRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
    settings: Settings = Depends(get_settings),
):
    form = AccountForm(**payload.model_dump())
    profile = accounts.create_account(
        db, auth_client, form, actor=user, domain=settings.allowed_email_domain
    )
    return UserResponse.model_validate(profile)


@router.patch("/users/{uid}", response_model=UserResponse)
def update_user(
    uid: str,
    payload: UpdateUserRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    profile = accounts.update_account(db, user, uid, AccountUpdate(**payload.model_dump()))
    return UserResponse.model_validate(profile)


@router.delete("/users/{uid}", status_code=204)
def delete_user(
    uid: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
):
    if uid == user.uid:
        raise InvalidInputError("Admins cannot delete their own account.", field="uid")
    accounts.delete_account(db, auth_client, user, uid)
    return Response(status_code=204)


# Posts


@router.get("/posts/latest", response_model=PostListResponse)
def latest_posts(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    posts = content.latest_posts(db, user)
    return PostListResponse(posts=[PostResponse.model_validate(p) for p in posts])


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    payload: PostCreateRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    post = content.create_post(db, user, payload.content, _attachment(payload.image))
    return PostResponse.model_validate(post)


@router.delete("/posts/{post_id}", status_code=204)
def delete_post(
    post_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    content.delete_post(db, user, post_id)
    return Response(status_code=204)


# Announcements


@router.get("/announcements", response_model=AnnouncementListResponse)
def list_announcements(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    items = content.list_announcements(db, user)
    return AnnouncementListResponse(
        announcements=[AnnouncementResponse.model_validate(a) for a in items]
    )


@router.get("/announcements/latest", response_model=AnnouncementListResponse)
def latest_announcements(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    items = content.latest_announcements(db, user)
    return AnnouncementListResponse(
        announcements=[AnnouncementResponse.model_validate(a) for a in items]
    )


@router.post("/announcements", response_model=AnnouncementResponse, status_code=201)
def create_announcement(
    payload: AnnouncementCreateRequest,
    background_tasks: BackgroundTasks,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    sender: PushSender = Depends(get_push_sender),
    settings: Settings = Depends(get_settings),
):
    """
    Creates an announcement for the author's department.

    When the API is the only writer (no Firestore trigger deployed), the
    department push goes out as a background task after the response.
    """
    announcement = content.create_announcement(
        db, user, payload.content, _attachment(payload.attachment)
    )
    if settings.send_push_notifications:
        background_tasks.add_task(notifications.notify_department, db, sender, announcement)
    return AnnouncementResponse.model_validate(announcement)


@router.delete("/announcements/{announcement_id}", status_code=204)
def delete_announcement(
    announcement_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    content.delete_announcement(db, user, announcement_id)
    return Response(status_code=204)


# Events


@router.get("/events", response_model=EventListResponse)
def list_events(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    events = content.list_events(db)
    return EventListResponse(events=[EventResponse.model_validate(e) for e in events])


@router.get("/events/latest", response_model=EventListResponse)
def latest_events(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    events = content.latest_events(db)
    return EventListResponse(events=[EventResponse.model_validate(e) for e in events])


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(
    event_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return EventResponse.model_validate(content.get_event(db, event_id))


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(
    payload: EventCreateRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    event = content.create_event(db, user, EventForm(**payload.model_dump()))
    return EventResponse.model_validate(event)


@router.delete("/events/{event_id}", status_code=204)
def delete_event(
    event_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    content.delete_event(db, user, event_id)
    return Response(status_code=204)


# Resources


@router.get("/resources", response_model=ResourceListResponse)
def list_resources(
    type: str | None = Query(None, description="academic_calendar or exam_schedule"),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    items = resources.list_resources(db, storage, user, type)
    return ResourceListResponse(resources=[_resource_response(item) for item in items])


@router.post("/resources", response_model=ResourceResponse, status_code=201)
async def upload_resource(
    type: str = Form(...),
    file: UploadFile = File(...),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    form = ResourceForm(type=type, file=await _read_upload(file))
    resource = resources.upload_resource(db, storage, user, form)
    return ResourceResponse.model_validate(resource)


@router.put("/resources/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: str,
    type: str = Form(...),
    file: UploadFile | None = File(None),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    form = ResourceForm(type=type, file=await _read_upload(file))
    resource = resources.update_resource(db, storage, user, resource_id, form)
    return ResourceResponse.model_validate(resource)


@router.delete("/resources/{resource_id}", status_code=204)
def delete_resource(
    resource_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    resources.delete_resource(db, storage, user, resource_id)
    return Response(status_code=204)


# Quick links


@router.get("/quicklinks", response_model=QuickLinkListResponse)
def list_quick_links(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    links = resources.list_quick_links(db)
    return QuickLinkListResponse(links=[QuickLinkResponse.model_validate(link) for link in links])


@router.post("/quicklinks", response_model=QuickLinkResponse, status_code=201)
def create_quick_link(
    payload: QuickLinkRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    link = resources.create_quick_link(db, user, QuickLinkForm(**payload.model_dump()))
    return QuickLinkResponse.model_validate(link)


@router.put("/quicklinks/{link_id}", response_model=QuickLinkResponse)
def update_quick_link(
    link_id: str,
    payload: QuickLinkRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    link = resources.update_quick_link(
        db, user, link_id, QuickLinkForm(**payload.model_dump())
    )
    return QuickLinkResponse.model_validate(link)


@router.delete("/quicklinks/{link_id}", status_code=204)
def delete_quick_link(
    link_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    resources.delete_quick_link(db, user, link_id)
    return Response(status_code=204)


# Clubs


def _club_form(
    name: str,
    description: str,
    incharge: str,
    president: str,
    vice_president: str,
    secretary: str,
) -> ClubForm:
    return ClubForm(
        name=name,
        description=description,
        officials=ClubOfficials(
            incharge=incharge,
            president=president,
            vice_president=vice_president,
            secretary=secretary,
        ),
    )


@router.get("/clubs", response_model=ClubListResponse)
def list_clubs(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ClubListResponse(
        clubs=[ClubResponse.model_validate(c) for c in clubs.list_clubs(db)]
    )


@router.post("/clubs", response_model=ClubResponse, status_code=201)
async def create_club(
    name: str = Form(...),
    description: str = Form(...),
    incharge: str = Form(...),
    president: str = Form(...),
    vice_president: str = Form(...),
    secretary: str = Form(...),
    picture: UploadFile | None = File(None),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    form = _club_form(name, description, incharge, president, vice_president, secretary)
    club = clubs.create_club(db, storage, user, form, await _read_upload(picture))
    return ClubResponse.model_validate(club)


@router.put("/clubs/{club_id}", response_model=ClubResponse)
async def update_club(
    club_id: str,
    name: str = Form(...),
    description: str = Form(...),
    incharge: str = Form(...),
    president: str = Form(...),
    vice_president: str = Form(...),
    secretary: str = Form(...),
    picture: UploadFile | None = File(None),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    form = _club_form(name, description, incharge, president, vice_president, secretary)
    club = clubs.update_club(db, storage, user, club_id, form, await _read_upload(picture))
    return ClubResponse.model_validate(club)


@router.delete("/clubs/{club_id}", status_code=204)
def delete_club(
    club_id: str,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    clubs.delete_club(db, storage, user, club_id)
    return Response(status_code=204)


# Jobs and assistant


@router.post("/admin/purge-events", response_model=PurgeResponse)
def purge_events(
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Runs the past-event purge on demand (the scheduled job does it daily).
    """
    if not visibility.is_admin(user):
        raise PermissionDeniedError("Only admins can purge events.")
    return PurgeResponse.model_validate(purge.purge_past_events(db))


@router.post("/assistant/ask", response_model=AnswerResponse)
def ask_assistant(
    payload: QuestionRequest,
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    answer = campus_assistant.answer_campus_question(
        db, payload.question, api_key=settings.gemini_api_key
    )
    return AnswerResponse.model_validate(answer)


# Live feed


def feed_events(
    db: DbClient,
    uid: str,
    max_events: int | None = None,
    heartbeat_seconds: float = FEED_HEARTBEAT_SECONDS,
) -> Iterator[str]:
    """
    Yields server-sent events for a viewer's live dashboard feed.

    Snapshot listener callbacks arrive on other threads and are handed over
    through a queue. A comment line is sent when nothing changed for
    `heartbeat_seconds` so proxies keep the connection open.
    """
    updates: queue.Queue[FeedSnapshot] = queue.Queue()
    feed = LiveFeed(db, uid, updates.put)
    feed.start()
    sent = 0
    try:
        while max_events is None or sent < max_events:
            try:
                snapshot = updates.get(timeout=heartbeat_seconds)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            body = FeedSnapshotResponse.model_validate(snapshot).model_dump_json()
            yield f"event: feed\ndata: {body}\n\n"
            sent += 1
    finally:
        feed.stop()
        logger.info("Closed live feed for %s after %d update(s)", uid, sent)


@router.get("/feed/stream")
def stream_feed(
    max_events: int | None = Query(None, ge=1),
    user: UserProfile = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return StreamingResponse(
        feed_events(db, user.uid, max_events=max_events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
