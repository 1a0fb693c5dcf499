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
"""Department resources (calendars, exam schedules) and quick links."""

import logging
from typing import List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from community import validation, visibility
from community.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from community.storage import StorageClient
from community.store import DbClient, QueryFilter, from_document, to_document
from shared.api import QuickLinkForm, ResourceDownload, ResourceForm
from shared.constants import (
    QUICK_LINKS_COLLECTION,
    RESOURCES_COLLECTION,
    RESOURCES_STORAGE_PREFIX,
)
from shared.types import QuickLink, Resource, ResourceType, UserProfile
from shared.utils import current_millis, storage_safe_name

logger = logging.getLogger(__name__)

DOWNLOAD_URL_EXPIRY_SECONDS = 3600


def resource_path(
    department: str, resource_type: ResourceType, filename: str, millis: Optional[int] = None
) -> str:
    if millis is None:
        millis = current_millis()
    return (
        f"{RESOURCES_STORAGE_PREFIX}/{department}/{resource_type}/"
        f"{millis}_{storage_safe_name(filename)}"
    )


def _resource_type(value) -> ResourceType:
    if value not in list(ResourceType):
        raise InvalidInputError("Unknown resource type.", field="type")
    return ResourceType(value)


def _require_manager(actor: Optional[UserProfile]) -> None:
    if not visibility.can_manage_resources(actor):
        raise PermissionDeniedError(
            "Only deans and HODs can manage department resources."
        )


def _load_owned(db: DbClient, actor: UserProfile, resource_id: str) -> Resource:
    doc = db.get(RESOURCES_COLLECTION, resource_id)
    if doc is None:
        raise NotFoundError("Resource not found.")
    resource = from_document(Resource, doc)
    if resource.department != actor.department:
        raise PermissionDeniedError("This resource belongs to another department.")
    return resource


def upload_resource(
    db: DbClient,
    storage: StorageClient,
    actor: Optional[UserProfile],
    form: ResourceForm,
) -> Resource:
    _require_manager(actor)
    resource_type = _resource_type(form.type)
    if form.file is None or not form.file.content:
        raise InvalidInputError("Please choose a file to upload.", field="file")

    path = resource_path(actor.department, resource_type, form.file.filename)
    storage.upload_bytes(path, form.file.content, form.file.content_type)
    resource = Resource(
        id="",
        file_name=form.file.filename,
        file_path=path,
        type=resource_type,
        department=actor.department,
        author_id=actor.uid,
        author_name=actor.username,
    )
    data = to_document(resource)
    data["createdAt"] = SERVER_TIMESTAMP
    data["updatedAt"] = SERVER_TIMESTAMP
    try:
        resource.id = db.add(RESOURCES_COLLECTION, data)
    except Exception:
        storage.delete(path)
        raise
    logger.info("Uploaded resource %s to %s", resource.id, path)
    return resource


def update_resource(
    db: DbClient,
    storage: StorageClient,
    actor: Optional[UserProfile],
    resource_id: str,
    form: ResourceForm,
) -> Resource:
    """
    Changes the type and/or replaces the file of a resource.

    A replaced file is deleted from storage after the document points at the
    new one. `createdAt` is left untouched.
    """
    _require_manager(actor)
    resource = _load_owned(db, actor, resource_id)
    resource_type = _resource_type(form.type)

    old_path = None
    update = {"type": str(resource_type), "updatedAt": SERVER_TIMESTAMP}
    if form.file is not None and form.file.content:
        new_path = resource_path(actor.department, resource_type, form.file.filename)
        storage.upload_bytes(new_path, form.file.content, form.file.content_type)
        update["fileName"] = form.file.filename
        update["filePath"] = new_path
        old_path = resource.file_path
        resource.file_name = form.file.filename
        resource.file_path = new_path
    db.update(RESOURCES_COLLECTION, resource_id, update)
    resource.type = resource_type

    if old_path:
        storage.delete(old_path)
    return resource


def delete_resource(
    db: DbClient,
    storage: StorageClient,
    actor: Optional[UserProfile],
    resource_id: str,
) -> None:
    _require_manager(actor)
    resource = _load_owned(db, actor, resource_id)
    db.delete(RESOURCES_COLLECTION, resource_id)
    storage.delete(resource.file_path)
    logger.info("Deleted resource %s", resource_id)


def list_resources(
    db: DbClient,
    storage: StorageClient,
    viewer: Optional[UserProfile],
    resource_type: Optional[ResourceType] = None,
) -> List[ResourceDownload]:
    if viewer is None or not viewer.department:
        return []
    if resource_type is not None:
        resource_type = _resource_type(resource_type)
    docs = db.query(
        RESOURCES_COLLECTION, [QueryFilter("department", "==", viewer.department)]
    )
    resources = visibility.select_resources(
        [from_document(Resource, doc) for doc in docs], viewer, resource_type
    )
    return [
        ResourceDownload(
            resource=resource,
            download_url=storage.presign_get(
                resource.file_path, expires_in=DOWNLOAD_URL_EXPIRY_SECONDS
            ),
        )
        for resource in resources
    ]


# Quick links


def _require_admin(actor: Optional[UserProfile]) -> None:
    if not visibility.can_manage_quick_links(actor):
        raise PermissionDeniedError("Only admins can manage quick links.")


def list_quick_links(db: DbClient) -> List[QuickLink]:
    links = [from_document(QuickLink, doc) for doc in db.query(QUICK_LINKS_COLLECTION)]
    return sorted(links, key=lambda link: (link.order, link.title.lower()))


def create_quick_link(
    db: DbClient, actor: Optional[UserProfile], form: QuickLinkForm
) -> QuickLink:
    _require_admin(actor)
    form = validation.validate_quick_link(form)
    link = QuickLink(id="", title=form.title, url=form.url, order=form.order)
    data = to_document(link)
    data["createdAt"] = SERVER_TIMESTAMP
    data["updatedAt"] = SERVER_TIMESTAMP
    link.id = db.add(QUICK_LINKS_COLLECTION, data)
    return link


def update_quick_link(
    db: DbClient, actor: Optional[UserProfile], link_id: str, form: QuickLinkForm
) -> QuickLink:
    _require_admin(actor)
    form = validation.validate_quick_link(form)
    if db.get(QUICK_LINKS_COLLECTION, link_id) is None:
        raise NotFoundError("Quick link not found.")
    db.update(
        QUICK_LINKS_COLLECTION,
        link_id,
        {
            "title": form.title,
            "url": form.url,
            "order": form.order,
            "updatedAt": SERVER_TIMESTAMP,
        },
    )
    return from_document(QuickLink, db.get(QUICK_LINKS_COLLECTION, link_id))


def delete_quick_link(db: DbClient, actor: Optional[UserProfile], link_id: str) -> None:
    _require_admin(actor)
    if db.get(QUICK_LINKS_COLLECTION, link_id) is None:
        raise NotFoundError("Quick link not found.")
    db.delete(QUICK_LINKS_COLLECTION, link_id)
