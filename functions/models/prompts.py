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

RESIZE_PROMPT = (
    "Resize this image to approximately {percent}% of its current dimensions "
    "while maintaining the exact aspect ratio. Keep the image quality as high "
    "as possible while reducing the file size. Output the resized image."
)


def make_resize_prompt(percent: int) -> str:
    """Prompt asking the image model to scale the attached image."""
    return RESIZE_PROMPT.format(percent=max(1, min(100, percent)))
