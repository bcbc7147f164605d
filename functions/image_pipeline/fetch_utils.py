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

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import requests

from shared.errors import UpstreamError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
DEFAULT_CONTENT_TYPE = "image/jpeg"


class ImageFetchError(UpstreamError):
    pass


@dataclass
class FetchedImage:
    url: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def fetch_image(url: str) -> FetchedImage:
    """
    Downloads an image from its public URL.

    Args:
        url (str): The URL of the image.

    Returns:
        FetchedImage: The image bytes and the content type reported by the host.

    Raises:
        ImageFetchError: If the request fails or returns a non-2xx status.
    """
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ImageFetchError(f"Failed to fetch image: {url} ({e})") from e

    content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    return FetchedImage(
        url=url,
        data=response.content,
        content_type=content_type.split(";")[0].strip(),
    )


def head_content_length(url: str) -> Optional[int]:
    """
    Returns the size in bytes of the object at url, or None if unknown.

    Uses a HEAD request; hosts that omit Content-Length on HEAD are asked
    again with a streamed GET whose body is never read.
    """
    response = requests.head(url, timeout=REQUEST_TIMEOUT, allow_redirects=True)
    response.raise_for_status()
    length = response.headers.get("Content-Length")
    if length is None:
        with requests.get(url, timeout=REQUEST_TIMEOUT, stream=True) as streamed:
            streamed.raise_for_status()
            length = streamed.headers.get("Content-Length")
    return int(length) if length is not None else None


def _safe_content_length(url: str) -> Optional[int]:
    try:
        return head_content_length(url)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Size check failed for %s: %s", url, e)
        return None


def fetch_sizes(urls: Iterable[str], max_workers: int = 8) -> Dict[str, Optional[int]]:
    """
    Runs HEAD size checks for all urls in parallel.

    Args:
        urls (Iterable[str]): The image URLs. Duplicates are checked once.
        max_workers (int): Thread pool size.

    Returns:
        Dict[str, Optional[int]]: Size per url, None where the check failed.
    """
    unique_urls = list(dict.fromkeys(url for url in urls if url))
    if not unique_urls:
        return {}

    sizes: Dict[str, Optional[int]] = {}
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=min(max_workers, len(unique_urls))
    ) as executor:
        futures = {
            executor.submit(_safe_content_length, url): url for url in unique_urls
        }
        for future in concurrent.futures.as_completed(futures):
            sizes[futures[future]] = future.result()
    return sizes
