"""
Routes standing in for the serverless functions used by the admin UI.

Request and response bodies are camelCase.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend import gallery_compression, youtube
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_compressor,
    get_db_client,
    get_storage_client,
    require_admin,
)
from backend.schemas import (
    CompressGalleryResponse,
    CompressImageListResponse,
    CompressImageRequest,
    CompressImageResponse,
    FetchYouTubeInfoRequest,
    GalleryImageInfo,
    YouTubeInfoResponse,
)
from backend.storage import StorageClient
from image_pipeline.compressor import Compressor
from shared.errors import InvalidRequestError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", dependencies=[Depends(require_admin)])


@router.post(
    "/compress-image",
    response_model=CompressImageListResponse | CompressImageResponse,
)
def compress_image(
    payload: CompressImageRequest,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    compressor: Compressor = Depends(get_compressor),
):
    if payload.mode == "list":
        images = gallery_compression.list_gallery_images(
            db,
            project_id=payload.project_id,
            max_workers=get_settings().head_check_workers,
        )
        return CompressImageListResponse(
            images=[
                GalleryImageInfo(
                    id=image.id,
                    project_id=image.project_id,
                    image_type=image.image_type,
                    url=image.url,
                    size=image.size,
                    needs_compression=gallery_compression.needs_compression(
                        image, compressor.max_bytes
                    ),
                )
                for image in images
            ]
        )

    if not payload.image_type:
        raise InvalidRequestError("imageType is required")
    outcome = gallery_compression.compress_gallery_image(
        db,
        storage,
        compressor,
        image_type=payload.image_type,
        project_id=payload.project_id,
        image_id=payload.image_id,
    )
    return CompressImageResponse(
        success=outcome.success,
        compressed=outcome.compressed,
        original_size=outcome.original_size,
        new_size=outcome.new_size,
        url=outcome.url,
    )


@router.post("/compress-gallery-images", response_model=CompressGalleryResponse)
def compress_gallery_images(
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    compressor: Compressor = Depends(get_compressor),
):
    logger.info("Starting inline gallery compression sweep")
    results = gallery_compression.compress_all_gallery_images(
        db,
        storage,
        compressor,
        max_workers=get_settings().head_check_workers,
    )
    return CompressGalleryResponse(**results)


@router.post("/fetch-youtube-info", response_model=YouTubeInfoResponse)
def fetch_youtube_info(payload: FetchYouTubeInfoRequest):
    info = youtube.fetch_youtube_info(payload.url)
    return YouTubeInfoResponse(
        video_id=info.video_id,
        title=info.title,
        thumbnail_url=info.thumbnail_url,
    )
