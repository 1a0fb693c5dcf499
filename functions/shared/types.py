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

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, List, Optional


class Role(StrEnum):
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class Designation(StrEnum):
    NONE = "none"
    DEAN = "dean"
    HOD = "hod"
    CLUB_INCHARGE = "club_incharge"


class Gender(StrEnum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ResourceType(StrEnum):
    ACADEMIC_CALENDAR = "academic_calendar"
    EXAM_SCHEDULE = "exam_schedule"


@dataclass
class UserProfile:
    """Profile document stored at users/{uid}."""

    uid: str
    email: str
    username: str
    department: str = ""
    role: Role = Role.STUDENT
    designation: Optional[Designation] = None
    regno: Optional[str] = None
    staff_id: Optional[str] = None
    gender: Optional[Gender] = None
    fcm_tokens: List[str] = field(default_factory=list)


@dataclass
class InlineAttachment:
    """A small file carried on the document itself as a data URL."""

    data_url: str
    name: str = ""
    type: str = ""


@dataclass
class Post:
    id: str
    author_id: str
    author_name: str
    content: str
    author_role: Optional[Role] = None
    author_department: str = ""
    author_designation: Optional[Designation] = None
    image_url: Optional[str] = None
    created_at: Any = None


@dataclass
class Announcement:
    id: str
    author_id: str
    author_name: str
    content: str
    author_department: str = ""
    author_designation: Optional[Designation] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    created_at: Any = None


@dataclass
class Event:
    id: str
    title: str
    description: str
    location: str
    # Stored as "YYYY-MM-DD" so string comparison orders by day.
    date: str
    author_id: str = ""
    author_name: str = ""
    registration_link: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Any = None


@dataclass
class Resource:
    id: str
    file_name: str
    file_path: str
    type: ResourceType
    department: str
    author_id: str
    author_name: str
    created_at: Any = None
    updated_at: Any = None


@dataclass
class QuickLink:
    id: str
    title: str
    url: str
    order: int = 0
    created_at: Any = None
    updated_at: Any = None


@dataclass
class ClubOfficials:
    incharge: str
    president: str
    vice_president: str
    secretary: str


@dataclass
class Club:
    id: str
    name: str
    description: str
    officials: ClubOfficials
    profile_pic_path: Optional[str] = None
    created_at: Any = None
