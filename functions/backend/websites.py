"""
Website showcase entries with screenshot or uploaded thumbnails.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import quote

from backend import ordering
from backend.db import DbClient
from backend.storage import StorageClient
from image_pipeline import image_utils
from shared import constants, string_utils
from shared.errors import InvalidRequestError, NotFoundError
from shared.types import MoveDirection

logger = logging.getLogger(__name__)

WEBSITES = constants.WEBSITES_TABLE
SCREENSHOT_URL = (
    "https://api.microlink.io/?url={url}&screenshot=true&meta=false"
    "&embed=screenshot.url"
)


def _millis() -> int:
    return int(time.time() * 1000)


def screenshot_url(url: str, timestamp: Optional[int] = None) -> str:
    screenshot = SCREENSHOT_URL.format(url=quote(url, safe=""))
    if timestamp is not None:
        # Busts the screenshot service cache.
        screenshot += f"&timestamp={timestamp}"
    return screenshot


def list_websites(db: DbClient) -> list[dict]:
    return db.select(WEBSITES, order_by="display_order")


def _get_website(db: DbClient, website_id: str) -> dict:
    website = db.get(WEBSITES, website_id)
    if not website:
        raise NotFoundError("Website not found")
    return website


def add_website(db: DbClient, url: str) -> dict:
    try:
        formatted = string_utils.normalize_website_url(url)
        title = string_utils.get_hostname(formatted)
    except ValueError as e:
        raise InvalidRequestError(str(e)) from e

    website = db.insert(
        WEBSITES,
        {
            "url": formatted,
            "title": title,
            "thumbnail_url": screenshot_url(formatted),
            "display_order": ordering.next_display_order(db, WEBSITES),
        },
    )
    logger.info("Added website %s (%s)", website["id"], title)
    return website


def delete_website(db: DbClient, website_id: str) -> None:
    if not db.delete(WEBSITES, [website_id]):
        raise NotFoundError("Website not found")


def move_website(db: DbClient, website_id: str, direction: MoveDirection) -> bool:
    return ordering.swap_display_order(
        db, WEBSITES, list_websites(db), website_id, direction
    )


def upload_custom_thumbnail(
    db: DbClient,
    storage: StorageClient,
    website_id: str,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
) -> dict:
    _get_website(db, website_id)
    if content_type and not image_utils.is_image_content_type(content_type):
        raise InvalidRequestError(f"{filename or 'Upload'} is not an image")
    optimized = image_utils.optimize_upload(data)
    path = f"website-{website_id}-{_millis()}.webp"
    storage.upload_bytes(path, optimized.data, optimized.content_type)
    return db.update(
        WEBSITES, website_id, {"custom_thumbnail_url": storage.public_url(path)}
    )


def regenerate_screenshot(db: DbClient, website_id: str) -> dict:
    website = _get_website(db, website_id)
    return db.update(
        WEBSITES,
        website_id,
        {
            "thumbnail_url": screenshot_url(website["url"], timestamp=_millis()),
            "custom_thumbnail_url": None,
        },
    )
