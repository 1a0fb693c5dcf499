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
"""Access to the managed authentication service (Firebase Auth)."""

from __future__ import annotations

import threading
import uuid
from typing import Protocol

from firebase_admin import auth

from community.errors import AlreadyExistsError, AuthenticationError, NotFoundError

EMAIL_IN_USE_MESSAGE = "This email address is already in use by another account."


class AuthClient(Protocol):
    """Defines the operations the app needs from the auth service."""

    def create_user(self, email: str, password: str, display_name: str) -> str:
        ...

    def delete_user(self, uid: str) -> None:
        ...

    def verify_id_token(self, id_token: str) -> str:
        ...


class FirebaseAuthClient:
    """Firebase Auth through the Admin SDK."""

    def __init__(self, app=None):
        self.app = app

    def create_user(self, email: str, password: str, display_name: str) -> str:
        try:
            record = auth.create_user(
                email=email, password=password, display_name=display_name, app=self.app
            )
        except auth.EmailAlreadyExistsError as e:
            raise AlreadyExistsError(EMAIL_IN_USE_MESSAGE) from e
        return record.uid

    def delete_user(self, uid: str) -> None:
        try:
            auth.delete_user(uid, app=self.app)
        except auth.UserNotFoundError as e:
            raise NotFoundError(f"No auth account for {uid}") from e

    def verify_id_token(self, id_token: str) -> str:
        try:
            claims = auth.verify_id_token(id_token, app=self.app)
        except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError) as e:
            raise AuthenticationError("Invalid or expired sign-in token.") from e
        return claims["uid"]


class InMemoryAuthClient:
    """Test double for the auth service."""

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def create_user(self, email: str, password: str, display_name: str) -> str:
        with self._lock:
            if any(u["email"].lower() == email.lower() for u in self.users.values()):
                raise AlreadyExistsError(EMAIL_IN_USE_MESSAGE)
            uid = uuid.uuid4().hex[:28]
            self.users[uid] = {
                "email": email,
                "password": password,
                "display_name": display_name,
            }
        return uid

    def delete_user(self, uid: str) -> None:
        with self._lock:
            if self.users.pop(uid, None) is None:
                raise NotFoundError(f"No auth account for {uid}")
            self.tokens = {t: u for t, u in self.tokens.items() if u != uid}

    def verify_id_token(self, id_token: str) -> str:
        uid = self.tokens.get(id_token)
        if uid is None:
            raise AuthenticationError("Invalid or expired sign-in token.")
        return uid

    def issue_token(self, uid: str) -> str:
        """Mints a bearer token for `uid` (tests and local runs)."""
        token = uuid.uuid4().hex
        self.tokens[token] = uid
        return token
