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
Shrinks oversized images below a byte threshold.

Two backends are available. `PillowCompressor` downscales by the square
root of the size ratio and then lowers JPEG quality step by step.
`GeminiCompressor` asks the image model to resize the picture and then
runs the same quality loop on its output, so both backends give the same
guarantee: a result whose final quality is above the floor fits the
threshold.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol

from PIL import Image

from image_pipeline import image_utils
from models import gemini
from models import prompts
from shared import constants

logger = logging.getLogger(__name__)


@dataclass
class CompressionResult:
    data: bytes
    content_type: str
    extension: str
    quality: int
    width: int
    height: int
    max_bytes: int

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def within_limit(self) -> bool:
        return self.size <= self.max_bytes


class Compressor(Protocol):
    max_bytes: int

    def compress(
        self, data: bytes, content_type: Optional[str] = None
    ) -> CompressionResult:
        ...


def reduction_ratio(original_size: int, max_bytes: int) -> float:
    """Linear scale factor assuming file size grows with pixel count."""
    if original_size <= max_bytes:
        return 1.0
    return math.sqrt(max_bytes / original_size)


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def compress_bytes(
    data: bytes,
    *,
    max_bytes: int = constants.MAX_IMAGE_BYTES,
    start_quality: int = constants.DEFAULT_START_QUALITY,
    min_quality: int = constants.MIN_QUALITY,
    quality_step: int = constants.QUALITY_STEP,
    scale: Optional[float] = None,
) -> CompressionResult:
    """
    Resizes and re-encodes an image as JPEG until it fits max_bytes.

    Quality starts at start_quality and drops by quality_step, clamped at
    min_quality. The loop stops as soon as the encoding fits, so a result
    with quality above min_quality is always within max_bytes.

    Args:
        data (bytes): The original encoded image.
        max_bytes (int): The size threshold.
        start_quality (int): First JPEG quality to try.
        min_quality (int): Lowest JPEG quality to try.
        quality_step (int): Quality decrement per attempt.
        scale (Optional[float]): Resize factor; derived from the size ratio
            when omitted. Never upscales.

    Returns:
        CompressionResult: The smallest encoding tried.

    Raises:
        InvalidImageError: If data is not an image.
    """
    image = image_utils.to_rgb(image_utils.open_image(data))
    ratio = reduction_ratio(len(data), max_bytes) if scale is None else scale
    if ratio < 1.0:
        size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
        image = image.resize(size, Image.Resampling.LANCZOS)

    quality = max(start_quality, min_quality)
    encoded = _encode_jpeg(image, quality)
    while len(encoded) > max_bytes and quality > min_quality:
        quality = max(quality - quality_step, min_quality)
        encoded = _encode_jpeg(image, quality)

    result = CompressionResult(
        data=encoded,
        content_type="image/jpeg",
        extension="jpg",
        quality=quality,
        width=image.width,
        height=image.height,
        max_bytes=max_bytes,
    )
    if not result.within_limit:
        logger.warning(
            "Could not reach %d bytes; best effort is %d bytes at quality %d",
            max_bytes,
            result.size,
            quality,
        )
    return result


@dataclass
class PillowCompressor:
    max_bytes: int = constants.MAX_IMAGE_BYTES
    start_quality: int = constants.DEFAULT_START_QUALITY
    min_quality: int = constants.MIN_QUALITY
    quality_step: int = constants.QUALITY_STEP

    def compress(
        self, data: bytes, content_type: Optional[str] = None
    ) -> CompressionResult:
        return compress_bytes(
            data,
            max_bytes=self.max_bytes,
            start_quality=self.start_quality,
            min_quality=self.min_quality,
            quality_step=self.quality_step,
        )


@dataclass
class GeminiCompressor:
    """Resizes through the image model, then enforces the threshold locally."""

    api_key: Optional[str] = None
    model: str = gemini.DEFAULT_IMAGE_MODEL
    max_bytes: int = constants.MAX_IMAGE_BYTES
    start_quality: int = constants.DEFAULT_START_QUALITY
    min_quality: int = constants.MIN_QUALITY
    quality_step: int = constants.QUALITY_STEP

    def compress(
        self, data: bytes, content_type: Optional[str] = None
    ) -> CompressionResult:
        ratio = reduction_ratio(len(data), self.max_bytes)
        prompt = prompts.make_resize_prompt(round(ratio * 100))
        resized, mime_type = gemini.call_edit_image(
            prompt,
            data,
            mime_type=content_type or "image/jpeg",
            model=self.model,
            api_key=self.api_key,
        )
        logger.info(
            "Image model returned %d bytes (%s) for a %d byte input",
            len(resized),
            mime_type,
            len(data),
        )
        return compress_bytes(
            resized,
            max_bytes=self.max_bytes,
            start_quality=self.start_quality,
            min_quality=self.min_quality,
            quality_step=self.quality_step,
        )
