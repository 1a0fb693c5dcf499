"""
Pydantic schemas for the campus community HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.types import Designation, Gender, ResourceType, Role


class OrmModel(BaseModel):
    """Response models built straight from the domain dataclasses."""

    model_config = ConfigDict(from_attributes=True)


# Accounts


class SignUpRequest(BaseModel):
    email: str
    password: str
    username: str
    department: str
    role: str
    gender: Optional[str] = None
    regno: Optional[str] = None
    staff_id: Optional[str] = None


class CreateUserRequest(SignUpRequest):
    designation: Optional[str] = None


class UpdateUserRequest(BaseModel):
    username: str
    department: str
    role: str
    regno: Optional[str] = None
    staff_id: Optional[str] = None


class UserResponse(OrmModel):
    uid: str
    email: str
    username: str
    department: str = ""
    role: Role
    designation: Optional[Designation] = None
    regno: Optional[str] = None
    staff_id: Optional[str] = None
    gender: Optional[Gender] = None


class UserListResponse(BaseModel):
    users: list[UserResponse]


class PushTokenRequest(BaseModel):
    token: str = Field(..., max_length=4096)


class PushTokenResponse(BaseModel):
    added: bool


# Content


class AttachmentPayload(BaseModel):
    data_url: str
    name: str = ""
    type: str = ""


class PostCreateRequest(BaseModel):
    content: str
    image: Optional[AttachmentPayload] = None


class PostResponse(OrmModel):
    id: str
    author_id: str
    author_name: str
    content: str
    author_role: Optional[Role] = None
    author_department: str = ""
    author_designation: Optional[Designation] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class PostListResponse(BaseModel):
    posts: list[PostResponse]


class AnnouncementCreateRequest(BaseModel):
    content: str
    attachment: Optional[AttachmentPayload] = None


class AnnouncementResponse(OrmModel):
    id: str
    author_id: str
    author_name: str
    content: str
    author_department: str = ""
    author_designation: Optional[Designation] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    created_at: Optional[datetime] = None


class AnnouncementListResponse(BaseModel):
    announcements: list[AnnouncementResponse]


class EventCreateRequest(BaseModel):
    title: str
    description: str
    location: str
    date: str
    registration_link: Optional[str] = None
    image_url: Optional[str] = None


class EventResponse(OrmModel):
    id: str
    title: str
    description: str
    location: str
    date: str
    author_id: str = ""
    author_name: str = ""
    registration_link: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class EventListResponse(BaseModel):
    events: list[EventResponse]


# Resources, quick links and clubs


class ResourceResponse(OrmModel):
    id: str
    file_name: str
    file_path: str
    type: ResourceType
    department: str
    author_id: str
    author_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    download_url: Optional[str] = None


class ResourceListResponse(BaseModel):
    resources: list[ResourceResponse]


class QuickLinkRequest(BaseModel):
    title: str
    url: str
    order: int = 0


class QuickLinkResponse(OrmModel):
    id: str
    title: str
    url: str
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuickLinkListResponse(BaseModel):
    links: list[QuickLinkResponse]


class ClubOfficialsResponse(OrmModel):
    incharge: str
    president: str
    vice_president: str
    secretary: str


class ClubResponse(OrmModel):
    id: str
    name: str
    description: str
    officials: ClubOfficialsResponse
    profile_pic_path: Optional[str] = None
    created_at: Optional[datetime] = None


class ClubListResponse(BaseModel):
    clubs: list[ClubResponse]


# Jobs, assistant and feeds


class PurgeResponse(OrmModel):
    today: str
    deleted: int
    succeeded: bool


class QuestionRequest(BaseModel):
    question: str


class AnswerResponse(OrmModel):
    question: str
    answer: str
    timestamp: int


class FeedSnapshotResponse(OrmModel):
    viewer: Optional[UserResponse] = None
    posts: list[PostResponse]
    announcements: list[AnnouncementResponse]
    events: list[EventResponse]
