"""
Compression of gallery images that exceed the size threshold.

Backs both serverless-style functions: the per-image `compress-image`
function (list sizes, compress one image) and the `compress-gallery-images`
sweep over every project and sub-image.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from backend.db import DbClient
from backend.storage import StorageClient
from image_pipeline import fetch_utils
from image_pipeline.compressor import Compressor
from shared import constants
from shared.errors import InvalidRequestError, NotFoundError
from shared.types import CompressionOutcome, GalleryImage, ImageType

logger = logging.getLogger(__name__)

PROJECTS = constants.GALLERY_PROJECTS_TABLE
IMAGES = constants.GALLERY_PROJECT_IMAGES_TABLE

# (table, url column) per image type
IMAGE_COLUMNS = {
    ImageType.MAIN: (PROJECTS, "main_image_url"),
    ImageType.SUB: (IMAGES, "image_url"),
}

ProgressCallback = Callable[[int, int], None]


def collect_gallery_images(
    db: DbClient, project_id: Optional[str] = None
) -> list[GalleryImage]:
    """Every main image followed by every sub-image, optionally for one project."""
    if project_id:
        projects = [p for p in [db.get(PROJECTS, project_id)] if p]
        sub_images = db.select(
            IMAGES, filters={"project_id": project_id}, order_by="display_order"
        )
    else:
        projects = db.select(PROJECTS, order_by="display_order")
        sub_images = db.select(IMAGES, order_by="display_order")

    images = [
        GalleryImage(
            id=project["id"],
            project_id=project["id"],
            image_type=ImageType.MAIN,
            url=project["main_image_url"],
        )
        for project in projects
    ]
    images.extend(
        GalleryImage(
            id=image["id"],
            project_id=image["project_id"],
            image_type=ImageType.SUB,
            url=image["image_url"],
        )
        for image in sub_images
    )
    return images


def list_gallery_images(
    db: DbClient,
    *,
    project_id: Optional[str] = None,
    max_workers: int = 8,
) -> list[GalleryImage]:
    """Gallery images with their sizes filled in by parallel HEAD checks."""
    images = collect_gallery_images(db, project_id)
    sizes = fetch_utils.fetch_sizes([image.url for image in images], max_workers)
    for image in images:
        image.size = sizes.get(image.url)
    return images


def needs_compression(image: GalleryImage, max_bytes: int) -> bool:
    return image.size is not None and image.size > max_bytes


def _resolve_image(
    db: DbClient,
    image_type: ImageType,
    project_id: Optional[str],
    image_id: Optional[str],
) -> GalleryImage:
    if image_type == ImageType.MAIN:
        row_id = project_id or image_id
        if not row_id:
            raise InvalidRequestError("projectId is required for main images")
        project = db.get(PROJECTS, row_id)
        if not project:
            raise NotFoundError("Project not found")
        return GalleryImage(
            id=project["id"],
            project_id=project["id"],
            image_type=ImageType.MAIN,
            url=project["main_image_url"],
        )

    if not image_id:
        raise InvalidRequestError("imageId is required for sub images")
    image = db.get(IMAGES, image_id)
    if not image or (project_id and image["project_id"] != project_id):
        raise NotFoundError("Image not found")
    return GalleryImage(
        id=image["id"],
        project_id=image["project_id"],
        image_type=ImageType.SUB,
        url=image["image_url"],
    )


def compress_image(
    db: DbClient,
    storage: StorageClient,
    compressor: Compressor,
    image: GalleryImage,
) -> CompressionOutcome:
    """
    Fetch one image and replace it with a compressed copy when oversized.

    Images at or under the threshold are not touched. The compressed copy is
    uploaded under a new name and the row is pointed at it.
    """
    fetched = fetch_utils.fetch_image(image.url)
    original_size = fetched.size
    max_bytes = compressor.max_bytes

    if original_size <= max_bytes:
        logger.info(
            "Image already under %d bytes: %s (%d bytes)",
            max_bytes,
            image.url,
            original_size,
        )
        return CompressionOutcome(
            success=True,
            compressed=False,
            original_size=original_size,
            new_size=original_size,
            url=image.url,
        )

    result = compressor.compress(fetched.data, fetched.content_type)
    if result.size >= original_size:
        logger.warning(
            "Compression did not shrink %s (%d -> %d bytes)",
            image.url,
            original_size,
            result.size,
        )
        return CompressionOutcome(
            success=False,
            compressed=False,
            original_size=original_size,
            new_size=original_size,
            url=image.url,
        )

    path = f"{constants.PROJECT_IMAGE_PREFIX}/compressed_{uuid.uuid4()}.{result.extension}"
    storage.upload_bytes(path, result.data, result.content_type, upsert=True)
    new_url = storage.public_url(path)

    table, column = IMAGE_COLUMNS[image.image_type]
    if db.update(table, image.id, {column: new_url}) is None:
        raise NotFoundError(f"Row {image.id} disappeared before update")

    logger.info(
        "Compressed %s image %s: %d -> %d bytes (quality %d)",
        image.image_type.value,
        image.id,
        original_size,
        result.size,
        result.quality,
    )
    return CompressionOutcome(
        success=True,
        compressed=True,
        original_size=original_size,
        new_size=result.size,
        url=new_url,
    )


def compress_gallery_image(
    db: DbClient,
    storage: StorageClient,
    compressor: Compressor,
    *,
    image_type: ImageType | str,
    project_id: Optional[str] = None,
    image_id: Optional[str] = None,
) -> CompressionOutcome:
    image = _resolve_image(db, ImageType(image_type), project_id, image_id)
    return compress_image(db, storage, compressor, image)


def compress_all_gallery_images(
    db: DbClient,
    storage: StorageClient,
    compressor: Compressor,
    *,
    max_workers: int = 8,
    on_progress: Optional[ProgressCallback] = None,
) -> dict:
    """
    Run one sweep over every gallery image.

    Sizes are checked with parallel HEAD requests first so images known to be
    small are skipped without downloading them. Failures are counted and
    logged; they never stop the sweep.
    """
    images = list_gallery_images(db, max_workers=max_workers)
    results = {
        "processed": 0,
        "compressed": 0,
        "skipped": 0,
        "failed": 0,
        "details": [],
    }
    total = len(images)

    for index, image in enumerate(images, start=1):
        results["processed"] += 1
        if image.size is not None and image.size <= compressor.max_bytes:
            results["skipped"] += 1
        else:
            try:
                outcome = compress_image(db, storage, compressor, image)
            except Exception:
                logger.exception("Failed to compress %s image %s", image.image_type.value, image.id)
                results["failed"] += 1
            else:
                if outcome.compressed:
                    results["compressed"] += 1
                    results["details"].append(
                        {
                            "id": image.id,
                            "type": image.image_type.value,
                            "originalSize": outcome.original_size,
                            "newSize": outcome.new_size,
                        }
                    )
                elif outcome.success:
                    results["skipped"] += 1
                else:
                    results["failed"] += 1
        if on_progress:
            on_progress(index, total)

    logger.info(
        "Sweep finished: %d processed, %d compressed, %d skipped, %d failed",
        results["processed"],
        results["compressed"],
        results["skipped"],
        results["failed"],
    )
    return results
