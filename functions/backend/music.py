"""
Music artworks: YouTube links shown on the music page.
"""

from __future__ import annotations

import logging

from backend import ordering, youtube
from backend.db import DbClient
from shared import constants
from shared.errors import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)

ARTWORKS = constants.MUSIC_ARTWORKS_TABLE


def list_artworks(db: DbClient) -> list[dict]:
    return db.select(ARTWORKS, order_by="display_order")


def add_artwork(db: DbClient, youtube_url: str) -> dict:
    youtube_url = (youtube_url or "").strip()
    info = youtube.fetch_youtube_info(youtube_url)
    artwork = db.insert(
        ARTWORKS,
        {
            "youtube_url": youtube_url,
            "youtube_video_id": info.video_id,
            "title": info.title,
            "thumbnail_url": info.thumbnail_url,
            "display_order": ordering.next_display_order(db, ARTWORKS),
        },
    )
    logger.info("Added music artwork %s (%s)", artwork["id"], info.video_id)
    return artwork


def update_title(db: DbClient, artwork_id: str, title: str) -> dict:
    if not (title or "").strip():
        raise InvalidRequestError("Title is required")
    updated = db.update(ARTWORKS, artwork_id, {"title": title.strip()})
    if not updated:
        raise NotFoundError("Artwork not found")
    return updated


def delete_artwork(db: DbClient, artwork_id: str) -> None:
    if not db.delete(ARTWORKS, [artwork_id]):
        raise NotFoundError("Artwork not found")


def refresh_artwork(db: DbClient, artwork_id: str) -> dict:
    """Re-read title and thumbnail from YouTube."""
    artwork = db.get(ARTWORKS, artwork_id)
    if not artwork:
        raise NotFoundError("Artwork not found")
    info = youtube.fetch_youtube_info(artwork["youtube_url"])
    return db.update(
        ARTWORKS,
        artwork_id,
        {"title": info.title, "thumbnail_url": info.thumbnail_url},
    )
