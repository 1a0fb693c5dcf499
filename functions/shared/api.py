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

from dataclasses import dataclass
from typing import Optional

from shared.types import ClubOfficials, Designation, Gender, Resource, ResourceType, Role


@dataclass
class AccountForm:
    """Sign-up or admin "create user" form."""

    email: str
    password: str
    username: str
    department: str
    role: Role
    designation: Optional[Designation] = None
    regno: Optional[str] = None
    staff_id: Optional[str] = None
    gender: Optional[Gender] = None


@dataclass
class AccountUpdate:
    """Fields an admin may change on an existing profile."""

    username: str
    department: str
    role: Role
    regno: Optional[str] = None
    staff_id: Optional[str] = None


@dataclass
class EventForm:
    title: str
    description: str
    location: str
    date: str
    registration_link: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class QuickLinkForm:
    title: str
    url: str
    order: int = 0


@dataclass
class ClubForm:
    name: str
    description: str
    officials: ClubOfficials


@dataclass
class FileUpload:
    """An uploaded file headed for object storage."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class ResourceForm:
    type: ResourceType
    file: Optional[FileUpload] = None


@dataclass
class CreateUserAccountResult:
    uid: str


@dataclass
class DeleteUserAccountResult:
    uid: str


@dataclass
class RegisterPushTokenResult:
    added: bool


@dataclass
class CampusAnswer:
    """A campus assistant reply."""

    question: str
    answer: str
    timestamp: int


@dataclass
class ResourceDownload:
    """A resource with a time-limited download URL."""

    resource: Resource
    download_url: str
