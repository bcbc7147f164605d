"""
Design gallery: projects with a main image and ordered sub-images.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from backend import ordering
from backend.db import DbClient
from backend.storage import StorageClient
from image_pipeline import image_utils
from shared import constants
from shared.errors import InvalidRequestError, NotFoundError
from shared.types import MoveDirection

logger = logging.getLogger(__name__)

PROJECTS = constants.GALLERY_PROJECTS_TABLE
IMAGES = constants.GALLERY_PROJECT_IMAGES_TABLE


def upload_image(
    storage: StorageClient,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
) -> tuple[str, image_utils.OptimizedUpload]:
    """Optimise an admin upload and store it under projects/. Returns its public URL."""
    if content_type and not image_utils.is_image_content_type(content_type):
        raise InvalidRequestError(f"{filename or 'Upload'} is not an image")
    optimized = image_utils.optimize_upload(data)
    path = f"{constants.PROJECT_IMAGE_PREFIX}/{uuid.uuid4()}.webp"
    storage.upload_bytes(path, optimized.data, optimized.content_type)
    return storage.public_url(path), optimized


def list_projects(db: DbClient) -> list[dict]:
    return db.select(PROJECTS, order_by="display_order")


def get_project(db: DbClient, project_id: str) -> dict:
    project = db.get(PROJECTS, project_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


def list_project_images(db: DbClient, project_id: str) -> list[dict]:
    return db.select(IMAGES, filters={"project_id": project_id}, order_by="display_order")


def add_project(
    db: DbClient,
    storage: StorageClient,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
) -> dict:
    url, optimized = upload_image(storage, data, filename, content_type)
    project = db.insert(
        PROJECTS,
        {
            "main_image_url": url,
            "aspect_ratio": optimized.aspect_ratio,
            "display_order": ordering.next_display_order(db, PROJECTS),
        },
    )
    logger.info("Added gallery project %s", project["id"])
    return project


def update_project(
    db: DbClient,
    project_id: str,
    title: Optional[str],
    description: Optional[str],
) -> dict:
    updated = db.update(
        PROJECTS,
        project_id,
        {"title": title or None, "description": description or None},
    )
    if not updated:
        raise NotFoundError("Project not found")
    return updated


def bulk_delete_projects(db: DbClient, project_ids: Iterable[str]) -> int:
    """Delete the given projects and their sub-images. Returns projects removed."""
    project_ids = list(dict.fromkeys(project_ids))
    image_ids = [
        image["id"]
        for project_id in project_ids
        for image in db.select(IMAGES, filters={"project_id": project_id})
    ]
    db.delete(IMAGES, image_ids)
    deleted = db.delete(PROJECTS, project_ids)
    logger.info("Deleted %d gallery project(s)", deleted)
    return deleted


def delete_project(db: DbClient, project_id: str) -> None:
    if not bulk_delete_projects(db, [project_id]):
        raise NotFoundError("Project not found")


def move_project(db: DbClient, project_id: str, direction: MoveDirection) -> bool:
    return ordering.swap_display_order(
        db, PROJECTS, list_projects(db), project_id, direction
    )


def shuffle_projects(db: DbClient) -> list[dict]:
    ordering.shuffle_display_order(db, PROJECTS, list_projects(db))
    return list_projects(db)


def add_project_image(
    db: DbClient,
    storage: StorageClient,
    project_id: str,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
) -> dict:
    get_project(db, project_id)
    url, _ = upload_image(storage, data, filename, content_type)
    return db.insert(
        IMAGES,
        {
            "project_id": project_id,
            "image_url": url,
            "display_order": ordering.next_display_order(
                db, IMAGES, filters={"project_id": project_id}
            ),
        },
    )


def delete_project_image(db: DbClient, image_id: str) -> None:
    if not db.delete(IMAGES, [image_id]):
        raise NotFoundError("Image not found")
