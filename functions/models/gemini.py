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
from google.genai import types
from models import api_config
from typing import Optional, Tuple
from shared.errors import UpstreamError

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiInvalidResponseException(UpstreamError):
    pass


def _first_inline_image(response) -> Optional[Tuple[bytes, str]]:
    for candidate in response.candidates or []:
        if not candidate.content:
            continue
        for part in candidate.content.parts or []:
            inline_data = part.inline_data
            if inline_data and inline_data.data:
                return inline_data.data, inline_data.mime_type or "image/png"
    return None


def call_edit_image(
    prompt: str,
    image_bytes: bytes,
    mime_type: str = "image/jpeg",
    model: str = DEFAULT_IMAGE_MODEL,
    api_key: str | None = None,
) -> Tuple[bytes, str]:
    """
    Calls the Gemini image model with a prompt and an input image.

    Args:
        prompt (str): The edit instruction.
        image_bytes (bytes): The input image.
        mime_type (str): The MIME type of image_bytes.
        model (str): The model to call with.
        api_key (str | None): Overrides the default API key.

    Returns:
        Tuple[bytes, str]: The generated image bytes and their MIME type.

    Raises:
        GeminiInvalidResponseException: If the response holds no image.
    """
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)

    client = genai.Client(api_key=api_key)

    start_time = time.time()
    truncated_prompt = (prompt[:200] + "...") if len(prompt) > 200 else prompt
    logger.info("Calling Gemini image edit, prompt: '%s'", truncated_prompt)
    response = client.models.generate_content(
        model=model,
        contents=[
            prompt,
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ],
        config=types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
        ),
    )
    logger.info("Gemini image edit call took: %.2fs", time.time() - start_time)

    image = _first_inline_image(response)
    if not image:
        raise GeminiInvalidResponseException("No image returned from model")
    return image
