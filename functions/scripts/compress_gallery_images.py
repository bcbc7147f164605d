"""
Run the gallery compression sweep from the command line.

Every main image and sub-image over the size threshold is recompressed and
its row pointed at the new object. With --dry-run the oversized images are
only listed.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend import gallery_compression
from backend.config import get_settings
from backend.dependencies import build_compressor, get_db_client, get_storage_client


logger = logging.getLogger(__name__)


def list_oversized(db, *, project_id, max_bytes: int, max_workers: int) -> list:
    images = gallery_compression.list_gallery_images(
        db, project_id=project_id, max_workers=max_workers
    )
    oversized = [
        image
        for image in images
        if gallery_compression.needs_compression(image, max_bytes)
    ]
    for image in oversized:
        logger.info(
            "%s image %s: %d bytes (%s)",
            image.image_type.value,
            image.id,
            image.size,
            image.url,
        )
    unknown = sum(1 for image in images if image.size is None)
    if unknown:
        logger.warning("%d image(s) did not report a size", unknown)
    return oversized


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compress oversized gallery images")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List images over the threshold without compressing them",
    )
    parser.add_argument(
        "--project-id",
        default=None,
        help="Only list images of this project (dry run only)",
    )
    parser.add_argument(
        "--backend",
        choices=("pillow", "gemini"),
        default=None,
        help="Override COMPRESSION_BACKEND",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    db = get_db_client()

    if args.dry_run:
        oversized = list_oversized(
            db,
            project_id=args.project_id,
            max_bytes=settings.compression_max_bytes,
            max_workers=settings.head_check_workers,
        )
        logger.info("%d image(s) over %d bytes", len(oversized), settings.compression_max_bytes)
        return 0

    results = gallery_compression.compress_all_gallery_images(
        db,
        get_storage_client(),
        build_compressor(settings, backend=args.backend),
        max_workers=settings.head_check_workers,
    )
    print(json.dumps(results, indent=2))
    return 1 if results["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
