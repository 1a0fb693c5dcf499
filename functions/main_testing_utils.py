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

from community.store import InMemoryDbClient, to_document
from shared.constants import EVENTS_COLLECTION, USERS_COLLECTION
from shared.types import Designation, Role, UserProfile


def create_mock_profile(
    uid="admin-uid",
    role=Role.ADMIN,
    department="CSE",
    designation=None,
    fcm_tokens=None,
) -> UserProfile:
    return UserProfile(
        uid=uid,
        email=f"{uid}@klu.ac.in",
        username=uid.replace("-", " ").title(),
        department=department,
        role=role,
        designation=designation,
        staff_id=None if role == Role.STUDENT else f"STAFF-{uid}",
        regno=f"REG-{uid}" if role == Role.STUDENT else None,
        fcm_tokens=list(fcm_tokens or []),
    )


def create_seeded_db() -> InMemoryDbClient:
    """An in-memory store holding an admin, a HOD and two CSE students."""
    db = InMemoryDbClient()
    profiles = [
        create_mock_profile("admin-uid", Role.ADMIN, department="ADMIN"),
        create_mock_profile(
            "hod-uid", Role.FACULTY, designation=Designation.HOD, fcm_tokens=["hod-token"]
        ),
        create_mock_profile("student-1", Role.STUDENT, fcm_tokens=["s1-token"]),
        create_mock_profile("student-2", Role.STUDENT, fcm_tokens=["s2-token"]),
    ]
    for profile in profiles:
        db.set(USERS_COLLECTION, profile.uid, to_document(profile))
    db.set(
        EVENTS_COLLECTION,
        "fest",
        {
            "title": "Fest",
            "description": "Annual cultural fest",
            "location": "Main ground",
            "date": "2099-01-15",
        },
    )
    return db
