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

from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Optional


class JobStatus(Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ImageType(StrEnum):
    """Which column of which gallery table an image URL lives in."""

    MAIN = "main"
    SUB = "sub"


class MoveDirection(StrEnum):
    UP = "up"
    DOWN = "down"


@dataclass
class GalleryImage:
    """A gallery image URL together with the row that references it."""

    id: str
    project_id: str
    image_type: ImageType
    url: str
    size: Optional[int] = None


@dataclass
class CompressionOutcome:
    """Result of compressing a single gallery image."""

    success: bool
    compressed: bool
    original_size: int
    new_size: int
    url: Optional[str] = None


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None


@dataclass
class YouTubeInfo:
    video_id: str
    title: str
    thumbnail_url: str
