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

# Firestore collection names.
USERS_COLLECTION = "users"
POSTS_COLLECTION = "posts"
ANNOUNCEMENTS_COLLECTION = "announcements"
EVENTS_COLLECTION = "events"
RESOURCES_COLLECTION = "resources"
QUICK_LINKS_COLLECTION = "quicklinks"
CLUBS_COLLECTION = "clubs"

# Storage prefixes.
RESOURCES_STORAGE_PREFIX = "resources"
CLUB_PICTURES_STORAGE_PREFIX = "club_pictures"

ALLOWED_EMAIL_DOMAIN = "klu.ac.in"

# Inline attachments are stored as data URLs directly on the document.
MAX_ATTACHMENT_BYTES = 350 * 1024
# Firestore's 1MB limit for a single field.
MAX_INLINE_DATA_URL_LENGTH = 1048487

# Event images are shrunk to fit this box and re-encoded before storage.
MAX_IMAGE_DIMENSION = 1280
IMAGE_COMPRESSION_QUALITY = 70

SIGNUP_MIN_PASSWORD_LENGTH = 8
SIGNUP_MIN_USERNAME_LENGTH = 2
ADMIN_CREATE_MIN_PASSWORD_LENGTH = 6
ADMIN_CREATE_MIN_USERNAME_LENGTH = 1

# Feeds work over a small window of the most recent documents.
FEED_CANDIDATE_LIMIT = 20
POST_FEED_LIMIT = 5
ADMIN_POST_FEED_LIMIT = 10
ANNOUNCEMENT_FEED_LIMIT = 3
EVENT_FEED_LIMIT = 3

# Firestore caps a write batch at 500 operations; FCM caps multicast at 500.
MAX_BATCH_OPERATIONS = 500
MAX_MULTICAST_TOKENS = 500

EVENT_DATE_FORMAT = "%Y-%m-%d"
CAMPUS_TIMEZONE = "Asia/Kolkata"
PURGE_SCHEDULE = "every 24 hours"

MAX_QUESTION_LENGTH = 1000
NOTIFICATION_BODY_MAX_LENGTH = 120
