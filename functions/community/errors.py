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
"""Errors raised by community operations.

Entry points translate these: the HTTP API into status codes, the Cloud
Functions into `https_fn.HttpsError` codes.
"""

from typing import Optional


class CommunityError(Exception):
    """Base class for errors that carry a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(CommunityError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PermissionDeniedError(CommunityError):
    pass


class NotFoundError(CommunityError):
    pass


class AlreadyExistsError(CommunityError):
    pass


class AuthenticationError(CommunityError):
    pass


class ResourceExhaustedError(CommunityError):
    pass


class ServiceUnavailableError(CommunityError):
    pass
