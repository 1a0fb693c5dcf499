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
"""Answers campus questions with Gemini, using upcoming events as context."""

import logging
import time
from typing import List

from community import content
from community.errors import (
    InvalidInputError,
    ResourceExhaustedError,
    ServiceUnavailableError,
)
from community.store import DbClient
from models import gemini
from models import prompts
from shared.api import CampusAnswer
from shared.constants import MAX_QUESTION_LENGTH
from shared.types import Event
from shared.utils import today_str

logger = logging.getLogger(__name__)

MAX_CONTEXT_EVENTS = 20


def validate_question(question: str) -> str:
    question = (question or "").strip()
    if not question:
        raise InvalidInputError("Please enter a question.", field="question")
    if len(question) > MAX_QUESTION_LENGTH:
        raise InvalidInputError(
            f"Questions are limited to {MAX_QUESTION_LENGTH} characters.",
            field="question",
        )
    return question


def make_prompt(question: str, events: List[Event], today: str) -> str:
    lines = [
        prompts.format_event_line(e.title, e.date, e.location, e.description)
        for e in events[:MAX_CONTEXT_EVENTS]
    ]
    return prompts.CAMPUS_QUESTION_PROMPT.format(
        today=today,
        events_string="\n".join(lines) or prompts.NO_EVENTS_TEXT,
        question=question,
    )


def answer_campus_question(
    db: DbClient,
    question: str,
    api_key: str | None = None,
    today: str | None = None,
) -> CampusAnswer:
    question = validate_question(question)
    if today is None:
        today = today_str()
    events = content.upcoming_events(db, today)
    prompt = make_prompt(question, events, today)

    try:
        answer = gemini.call_predict(prompt, api_key=api_key)
    except gemini.GeminiQuotaExceededException as e:
        logger.warning("Gemini quota exceeded: %s", e)
        raise ResourceExhaustedError(
            "The assistant is busy right now. Please try again in a minute."
        ) from e
    except Exception as e:
        logger.exception("Gemini call failed: %s", e)
        raise ServiceUnavailableError(
            "The assistant is unavailable. Please try again later."
        ) from e

    return CampusAnswer(
        question=question,
        answer=answer.strip(),
        timestamp=int(time.time() * 1000),
    )
