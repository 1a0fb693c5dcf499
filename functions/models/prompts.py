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

CAMPUS_QUESTION_PROMPT = """You are the campus assistant for a university community app.
Answer the student's or staff member's question briefly and helpfully.
Use the upcoming events listed below when they are relevant. If the answer is
not in the context and is not general knowledge about university life, say
that you don't know and suggest checking the announcements page or asking
the department office. Never invent dates, venues or contact details.

Today's date: {today}

Upcoming events:
{events_string}

Question: {question}
"""

NO_EVENTS_TEXT = "(no upcoming events)"


def format_event_line(title: str, date: str, location: str, description: str) -> str:
    line = f"- {date}: {title} @ {location}"
    if description:
        line += f" ({description})"
    return line
