"""
Worker loop that runs queued gallery compression sweeps.

The API enqueues job ids; each job is claimed with a lock timestamp before
the sweep runs so two workers never process the same job. Locks older than
the timeout are handed back to WAITING.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from backend import gallery_compression
from backend.config import get_settings
from backend.db import DbClient, JobRecord
from backend.dependencies import (
    get_compressor,
    get_db_client,
    get_queue_client,
    get_storage_client,
)
from backend.queue import JobQueue
from backend.storage import StorageClient
from image_pipeline.compressor import Compressor
from shared.types import JobStatus

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 900


def process_job(
    job: JobRecord,
    db: DbClient,
    storage: Optional[StorageClient] = None,
    compressor: Optional[Compressor] = None,
) -> dict:
    """
    Run one sweep for a claimed job and record its result.

    Progress is reported as the fraction of images handled. On failure the
    job is marked ERROR and the exception is re-raised.
    """
    storage = storage or get_storage_client()
    compressor = compressor or get_compressor()

    def on_progress(done: int, total: int) -> None:
        db.update_job_progress(
            job.job_id,
            status=JobStatus.RUNNING,
            stage="COMPRESSING",
            progress_percent=done / total if total else 1.0,
        )

    db.update_job_progress(
        job.job_id, status=JobStatus.RUNNING, stage="LISTING", progress_percent=0.0
    )
    try:
        results = gallery_compression.compress_all_gallery_images(
            db,
            storage,
            compressor,
            max_workers=get_settings().head_check_workers,
            on_progress=on_progress,
        )
    except Exception:
        db.update_job_progress(
            job.job_id,
            status=JobStatus.ERROR,
            stage="ERROR",
            progress_percent=0.0,
        )
        raise

    db.update_job_progress(
        job.job_id,
        status=JobStatus.SUCCESS,
        stage="SUCCESS",
        progress_percent=1.0,
        result=results,
    )
    logger.info("[%s] Sweep complete", job.job_id)
    return results


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    storage: Optional[StorageClient] = None,
    compressor: Optional[Compressor] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue (or DB fallback). Returns True if processed.
    """
    db = db if db is not None else get_db_client()
    queue = queue if queue is not None else get_queue_client()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if job_id:
        job = db.claim_job(job_id)
        if not job:
            logger.warning("Job %s is missing or already claimed; skipping", job_id)
            return False
    else:
        # Jobs that were recorded but never reached the queue.
        job = db.claim_next_waiting_job()
        if not job:
            return False

    process_job(job, db, storage=storage, compressor=compressor)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Simple polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    logging.basicConfig(level=get_settings().log_level.upper())
    db = get_db_client()
    queue = get_queue_client()
    while True:
        try:
            requeued = db.requeue_stale_locks(lock_timeout_seconds=LOCK_TIMEOUT_SECONDS)
            if requeued:
                logger.info("Requeued %d stale job(s)", requeued)
        except Exception:
            logger.exception("Failed to requeue stale locks")
        try:
            processed = process_next(
                db=db, queue=queue, block=True, timeout=int(poll_interval_seconds)
            )
        except Exception:
            logger.exception("Compression job failed")
            processed = True
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    run_loop()
