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
"""Form checks shared by the HTTP API and the Cloud Functions.

Each validator returns a cleaned copy of its input or raises
`InvalidInputError` naming the offending field.
"""

import base64
import binascii
import dataclasses
import io
import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from community.errors import InvalidInputError
from shared.api import AccountForm, AccountUpdate, ClubForm, EventForm, FileUpload, QuickLinkForm
from shared.constants import (
    ADMIN_CREATE_MIN_PASSWORD_LENGTH,
    ADMIN_CREATE_MIN_USERNAME_LENGTH,
    ALLOWED_EMAIL_DOMAIN,
    IMAGE_COMPRESSION_QUALITY,
    MAX_ATTACHMENT_BYTES,
    MAX_IMAGE_DIMENSION,
    MAX_INLINE_DATA_URL_LENGTH,
    SIGNUP_MIN_PASSWORD_LENGTH,
    SIGNUP_MIN_USERNAME_LENGTH,
)
from shared.types import ClubOfficials, Designation, Gender, InlineAttachment, Role
from shared.utils import format_link, is_valid_event_date

DATA_URL_PATTERN = re.compile(r"^data:([\w.+-]+/[\w.+-]+)?(;[\w=.+-]+)*;base64,(.*)$", re.S)

SELF_SIGNUP_ROLES = (Role.STUDENT, Role.FACULTY)


def require_text(value: Optional[str], field: str, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInputError(f"{label} is required.", field=field)
    return cleaned


def validate_email(email: str, domain: str = ALLOWED_EMAIL_DOMAIN) -> str:
    cleaned = require_text(email, "email", "Email")
    local, _, host = cleaned.rpartition("@")
    if not local or host.lower() != domain.lower():
        raise InvalidInputError(
            f"Please use your university email (@{domain}).", field="email"
        )
    return cleaned


def validate_account_form(
    form: AccountForm, admin: bool = False, domain: str = ALLOWED_EMAIL_DOMAIN
) -> AccountForm:
    """
    Checks a sign-up form, or an admin "create user" form when `admin` is set.

    Self sign-up is stricter: longer username and password, no admin role, and
    gender is mandatory. The returned form only carries the id field that
    matches the role (regno for students, staffId for everyone else).
    """
    min_username = ADMIN_CREATE_MIN_USERNAME_LENGTH if admin else SIGNUP_MIN_USERNAME_LENGTH
    min_password = ADMIN_CREATE_MIN_PASSWORD_LENGTH if admin else SIGNUP_MIN_PASSWORD_LENGTH

    username = require_text(form.username, "username", "Username")
    if len(username) < min_username:
        raise InvalidInputError(
            f"Username must be at least {min_username} characters.", field="username"
        )
    email = validate_email(form.email, domain)
    if len(form.password or "") < min_password:
        raise InvalidInputError(
            f"Password must be at least {min_password} characters.", field="password"
        )
    department = require_text(form.department, "department", "Department")

    if form.role not in list(Role):
        raise InvalidInputError("Unknown role.", field="role")
    role = Role(form.role)
    if not admin and role not in SELF_SIGNUP_ROLES:
        raise InvalidInputError(
            "Only students and faculty can sign up.", field="role"
        )

    if not admin and not form.gender:
        raise InvalidInputError("Gender is required.", field="gender")
    gender = None
    if form.gender:
        if form.gender not in list(Gender):
            raise InvalidInputError("Unknown gender.", field="gender")
        gender = Gender(form.gender)

    regno = staff_id = None
    if role == Role.STUDENT:
        regno = require_text(form.regno, "regno", "Registration number")
    else:
        staff_id = require_text(form.staff_id, "staff_id", "Staff ID")

    designation = None
    if admin and role != Role.STUDENT and form.designation:
        if form.designation not in list(Designation):
            raise InvalidInputError("Unknown designation.", field="designation")
        designation = Designation(form.designation)
        if designation == Designation.NONE:
            designation = None

    return dataclasses.replace(
        form,
        email=email,
        username=username,
        department=department,
        role=role,
        designation=designation,
        gender=gender,
        regno=regno,
        staff_id=staff_id,
    )


def validate_account_update(update: AccountUpdate) -> AccountUpdate:
    username = require_text(update.username, "username", "Username")
    department = require_text(update.department, "department", "Department")
    if update.role not in list(Role):
        raise InvalidInputError("Unknown role.", field="role")
    role = Role(update.role)
    if role == Role.STUDENT:
        return AccountUpdate(
            username=username,
            department=department,
            role=role,
            regno=require_text(update.regno, "regno", "Registration number"),
        )
    return AccountUpdate(
        username=username,
        department=department,
        role=role,
        staff_id=require_text(update.staff_id, "staff_id", "Staff ID"),
    )


def require_content(content: Optional[str]) -> str:
    return require_text(content, "content", "Content")


def _check_inline_length(data_url: str, field: str) -> None:
    if len(data_url) > MAX_INLINE_DATA_URL_LENGTH:
        raise InvalidInputError(
            "File is too large after encoding. Please choose a smaller file.",
            field=field,
        )


def decode_data_url(data_url: str, field: str = "attachment") -> Tuple[str, bytes]:
    """Returns the MIME type and decoded bytes of a size-checked data URL."""
    match = DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise InvalidInputError("Attachment must be a base64 data URL.", field=field)
    try:
        decoded = base64.b64decode(match.group(3), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputError("Attachment is not valid base64.", field=field)
    if len(decoded) > MAX_ATTACHMENT_BYTES:
        raise InvalidInputError(
            f"File must be {MAX_ATTACHMENT_BYTES // 1024} KB or smaller.", field=field
        )
    return match.group(1) or "application/octet-stream", decoded


def validate_data_url(data_url: str, field: str = "attachment") -> str:
    _check_inline_length(data_url or "", field)
    decode_data_url(data_url, field)
    return data_url


def downscale_image_data_url(data_url: str, field: str = "image_url") -> str:
    """
    Shrinks an image data URL to fit within MAX_IMAGE_DIMENSION pixels.

    The image keeps its aspect ratio and format, and is always re-encoded
    (JPEG and WebP at IMAGE_COMPRESSION_QUALITY). The result must still fit
    in a single Firestore field.
    """
    mime_type, content = decode_data_url(data_url, field)
    try:
        with Image.open(io.BytesIO(content)) as image:
            image_format = image.format
            image.load()
            image.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
            options = {}
            if image_format in ("JPEG", "WEBP"):
                options["quality"] = IMAGE_COMPRESSION_QUALITY
            buffer = io.BytesIO()
            image.save(buffer, format=image_format, **options)
    except (UnidentifiedImageError, OSError, ValueError):
        raise InvalidInputError("Image could not be read.", field=field)

    mime_type = Image.MIME.get(image_format, mime_type)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    result = f"data:{mime_type};base64,{encoded}"
    _check_inline_length(result, field)
    return result


def validate_attachment(attachment: InlineAttachment) -> InlineAttachment:
    return InlineAttachment(
        data_url=validate_data_url(attachment.data_url),
        name=(attachment.name or "").strip() or "attachment",
        type=(attachment.type or "").strip() or "application/octet-stream",
    )


def attachment_from_upload(upload: FileUpload) -> InlineAttachment:
    """Encodes an uploaded file as an inline data URL attachment."""
    if len(upload.content) > MAX_ATTACHMENT_BYTES:
        raise InvalidInputError(
            f"File must be {MAX_ATTACHMENT_BYTES // 1024} KB or smaller.",
            field="attachment",
        )
    encoded = base64.b64encode(upload.content).decode("ascii")
    mime_type = upload.content_type.split(";")[0].strip() or "application/octet-stream"
    attachment = InlineAttachment(
        data_url=f"data:{mime_type};base64,{encoded}",
        name=upload.filename,
        type=mime_type,
    )
    return validate_attachment(attachment)


def validate_event(form: EventForm) -> EventForm:
    title = require_text(form.title, "title", "Title")
    description = require_text(form.description, "description", "Description")
    location = require_text(form.location, "location", "Location")
    date = require_text(form.date, "date", "Date")
    if not is_valid_event_date(date):
        raise InvalidInputError("Date must be a valid YYYY-MM-DD date.", field="date")

    link = (form.registration_link or "").strip()
    image_url = form.image_url
    if image_url:
        image_url = downscale_image_data_url(image_url, field="image_url")
    return EventForm(
        title=title,
        description=description,
        location=location,
        date=date,
        registration_link=format_link(link) if link else None,
        image_url=image_url or None,
    )


def _whole_number(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    return None


def validate_quick_link(form: QuickLinkForm) -> QuickLinkForm:
    title = require_text(form.title, "title", "Title")
    url = require_text(form.url, "url", "URL")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(
            "URL must start with http:// or https://", field="url"
        )
    order = _whole_number(form.order)
    if order is None:
        raise InvalidInputError("Order must be a whole number.", field="order")
    if order < 0:
        raise InvalidInputError("Order must be 0 or greater.", field="order")
    return QuickLinkForm(title=title, url=url, order=order)


def validate_club(form: ClubForm) -> ClubForm:
    officials = form.officials
    return ClubForm(
        name=require_text(form.name, "name", "Club name"),
        description=require_text(form.description, "description", "Description"),
        officials=ClubOfficials(
            incharge=require_text(officials.incharge, "incharge", "Faculty in-charge"),
            president=require_text(officials.president, "president", "President"),
            vice_president=require_text(
                officials.vice_president, "vice_president", "Vice president"
            ),
            secretary=require_text(officials.secretary, "secretary", "Secretary"),
        ),
    )
