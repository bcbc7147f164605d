"""
YouTube metadata lookup used when adding music artworks.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests

from shared.errors import InvalidRequestError, UpstreamError
from shared.types import YouTubeInfo

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds
OEMBED_URL = "https://www.youtube.com/oembed"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/{name}.jpg"

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")
YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
}
PATH_PREFIXES = ("embed", "shorts", "live", "v")


class YouTubeLookupError(InvalidRequestError):
    pass


def extract_video_id(url: str) -> Optional[str]:
    """
    Returns the 11 character video id of a YouTube URL, or None.

    Handles watch?v=, youtu.be/, /embed/, /shorts/, /live/ and /v/ forms.
    """
    parsed = urlparse((url or "").strip())
    if not parsed.scheme:
        parsed = urlparse(f"https://{url.strip()}")
    host = (parsed.hostname or "").lower()

    candidate = None
    if host in ("youtu.be", "www.youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in YOUTUBE_HOSTS:
        segments = [segment for segment in parsed.path.split("/") if segment]
        if segments[:1] == ["watch"]:
            candidate = parse_qs(parsed.query).get("v", [None])[0]
        elif len(segments) >= 2 and segments[0] in PATH_PREFIXES:
            candidate = segments[1]

    if candidate and VIDEO_ID_PATTERN.match(candidate):
        return candidate
    return None


def _thumbnail_url(video_id: str) -> str:
    maxres = THUMBNAIL_URL.format(video_id=video_id, name="maxresdefault")
    try:
        response = requests.head(maxres, timeout=REQUEST_TIMEOUT)
        if response.ok:
            return maxres
    except requests.RequestException as e:
        logger.warning("Thumbnail check failed for %s: %s", video_id, e)
    return THUMBNAIL_URL.format(video_id=video_id, name="hqdefault")


def fetch_youtube_info(url: str) -> YouTubeInfo:
    """
    Looks up the title and thumbnail of a YouTube video.

    Args:
        url (str): Any supported YouTube video URL.

    Returns:
        YouTubeInfo: The video id, title and thumbnail URL.

    Raises:
        YouTubeLookupError: If the URL is not a YouTube video URL.
        UpstreamError: If the oEmbed request fails.
    """
    video_id = extract_video_id(url)
    if not video_id:
        raise YouTubeLookupError("Invalid YouTube URL")

    watch_url = f"https://www.youtube.com/watch?v={video_id}"
    try:
        response = requests.get(
            OEMBED_URL,
            params={"url": watch_url, "format": "json"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        raise UpstreamError(f"Failed to fetch YouTube info: {e}") from e

    return YouTubeInfo(
        video_id=video_id,
        title=payload.get("title") or video_id,
        thumbnail_url=_thumbnail_url(video_id),
    )
