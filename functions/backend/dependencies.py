"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException

from backend.auth import AuthClient, HostedAuthClient, InMemoryAuthClient
from backend.config import Settings, get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from backend.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from image_pipeline.compressor import Compressor, GeminiCompressor, PillowCompressor
from shared.types import AuthUser

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_auth_client: AuthClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client is not None:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client is not None:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not (
        settings.storage_endpoint or settings.storage_region
    ):
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_base_url or "",
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching jobs to workers.
    """
    global _queue_client
    if _queue_client is not None:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client is not None:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.auth_url:
        client = InMemoryAuthClient()
        for token, email in settings.admin_token_map().items():
            client.add_token(token, email)
        _auth_client = client
    else:
        _auth_client = HostedAuthClient(
            base_url=settings.auth_url,
            api_key=settings.auth_api_key or "",
        )
    return _auth_client


def build_compressor(settings: Settings, backend: Optional[str] = None) -> Compressor:
    """Build the configured compressor; `backend` overrides COMPRESSION_BACKEND."""
    options = dict(
        max_bytes=settings.compression_max_bytes,
        start_quality=settings.compression_start_quality,
        min_quality=settings.compression_min_quality,
        quality_step=settings.compression_quality_step,
    )
    if (backend or settings.compression_backend) == "gemini":
        return GeminiCompressor(
            api_key=settings.gemini_api_key,
            model=settings.gemini_image_model,
            **options,
        )
    return PillowCompressor(**options)


def get_compressor() -> Compressor:
    return build_compressor(get_settings())


def require_admin(
    authorization: Optional[str] = Header(default=None),
    auth: AuthClient = Depends(get_auth_client),
) -> AuthUser:
    """Resolve the bearer token to an admin user or fail with 401."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = auth.get_user(token.strip())
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user
