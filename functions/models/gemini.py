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

import time
import logging
from google import genai
from google.genai import errors
from google.genai import types
from models import api_config

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 1000
QUOTA_EXCEEDED_STATUS = 429


class GeminiInvalidResponseException(Exception):
    pass


class GeminiQuotaExceededException(Exception):
    pass


def call_predict(
    query: str,
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0.2,
) -> str:
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)
    if not model:
        model = api_config.DEFAULT_MODEL

    client = genai.Client(api_key=api_key)
    start_time = time.time()
    try:
        response = client.models.generate_content(
            model=model,
            contents=query,
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
            ),
        )
    except errors.ClientError as e:
        if e.code == QUOTA_EXCEEDED_STATUS:
            raise GeminiQuotaExceededException(str(e)) from e
        raise
    logger.info("Gemini call took %.2fs", time.time() - start_time)

    if not response.text:
        raise GeminiInvalidResponseException()
    return response.text
