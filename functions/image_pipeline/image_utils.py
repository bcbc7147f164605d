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

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from shared import constants
from shared.errors import InvalidRequestError

logger = logging.getLogger(__name__)


class InvalidImageError(InvalidRequestError):
    pass


@dataclass
class OptimizedUpload:
    """An admin upload after re-encoding for web display."""

    data: bytes
    content_type: str
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def open_image(data: bytes) -> Image.Image:
    """
    Decodes image bytes with EXIF orientation applied.

    Raises:
        InvalidImageError: If the bytes are not a decodable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Could not load image: {e}") from e
    return ImageOps.exif_transpose(image)


def is_image_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type) and content_type.startswith("image/")


def has_alpha(image: Image.Image) -> bool:
    if image.mode == "P":
        return "transparency" in image.info
    return "A" in image.getbands()


def to_rgb(image: Image.Image) -> Image.Image:
    """Flattens transparency onto white so the image can be saved as JPEG."""
    if image.mode in ("RGBA", "LA", "PA", "P"):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def optimize_upload(
    data: bytes,
    max_width: int = constants.UPLOAD_MAX_WIDTH,
    quality: int = constants.UPLOAD_QUALITY,
) -> OptimizedUpload:
    """
    Re-encodes an uploaded image as WebP, only ever downscaling.

    Transparency is kept, palette images included.

    Args:
        data (bytes): The uploaded file contents.
        max_width (int): Images wider than this are resized to this width.
        quality (int): WebP quality (1-100).

    Returns:
        OptimizedUpload: The encoded image and its final dimensions.
    """
    image = open_image(data)
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if has_alpha(image) else "RGB")

    width, height = image.width, image.height
    if width > max_width:
        height = max(1, round(height * max_width / width))
        width = max_width
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.save(buffer, format="WEBP", quality=quality, method=6)
    encoded = buffer.getvalue()
    logger.info(
        "Image compressed: %.1fKB -> %.1fKB (%d%% reduction)",
        len(data) / 1024,
        len(encoded) / 1024,
        round((1 - len(encoded) / len(data)) * 100) if data else 0,
    )
    return OptimizedUpload(
        data=encoded,
        content_type="image/webp",
        width=width,
        height=height,
    )
