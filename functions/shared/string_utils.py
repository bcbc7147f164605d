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

from urllib.parse import urlparse


def normalize_website_url(url: str) -> str:
    """
    Trims the url and prefixes it with https:// when it has no scheme.

    Args:
        url (str): The url as typed into the admin form.

    Returns:
        str: The formatted url.

    Raises:
        ValueError: If the url is empty or has no hostname.
    """
    formatted = (url or "").strip()
    if not formatted:
        raise ValueError("URL is required")
    if not formatted.startswith(("http://", "https://")):
        formatted = f"https://{formatted}"
    if not urlparse(formatted).hostname:
        raise ValueError(f"Invalid URL: {url}")
    return formatted


def get_hostname(url: str) -> str:
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL: {url}")
    return hostname
