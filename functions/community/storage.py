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
"""
Object storage for resource files and club pictures.

Cloud Storage is reached through its S3-compatible endpoint; any other
S3-compatible bucket works the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_ENDPOINT = "https://storage.googleapis.com"


class StorageClient(Protocol):
    """Defines the operations the app needs from object storage."""

    def upload_bytes(self, path: str, content: bytes, content_type: str) -> None:
        ...

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def delete(self, path: str) -> None:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(self, path: str, content: bytes, content_type: str) -> None:
        self.stored_objects[path] = (bytes(content), content_type)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored[0]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client.

    Defaults to the Cloud Storage interoperability endpoint, which takes HMAC
    keys as the access key pair.
    """

    bucket: str
    access_key_id: str
    secret_access_key: str
    endpoint: str = DEFAULT_STORAGE_ENDPOINT
    region: str = "auto"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(self, path: str, content: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=content,
            ContentType=content_type,
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in ("NoSuchKey", "404"):
                raise
            logger.info("Object %s was already gone", path)

    def get_bytes(self, path: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=path)
        return response["Body"].read()
