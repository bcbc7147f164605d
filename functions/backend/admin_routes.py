"""
Admin HTTP routes. Every route requires a valid bearer session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from backend import analytics, auth, gallery, goals, music, websites
from backend.auth import AuthClient
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_auth_client,
    get_db_client,
    get_queue_client,
    get_storage_client,
    require_admin,
)
from backend.queue import JobQueue
from backend.schemas import (
    AnalyticsSummary,
    BulkDeletePayload,
    CreateUserPayload,
    CreateUserResponse,
    DeleteResponse,
    GalleryProject,
    GalleryProjectImage,
    Goal,
    GoalsResponse,
    GoalUpdate,
    JobStatusResponse,
    MovePayload,
    MoveResponse,
    MusicArtwork,
    MusicArtworkCreate,
    Notes,
    ProjectUpdate,
    TitleUpdate,
    Website,
    WebsiteCreate,
)
from backend.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


# Gallery


@router.post(
    "/admin/gallery/projects", response_model=list[GalleryProject], status_code=201
)
async def add_gallery_projects(
    files: list[UploadFile] = File(...),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    """Create one project per uploaded image, appended in upload order."""
    projects = []
    for upload in files:
        data = await upload.read()
        projects.append(
            gallery.add_project(
                db, storage, data, upload.filename, upload.content_type
            )
        )
    return projects


@router.patch("/admin/gallery/projects/{project_id}", response_model=GalleryProject)
def update_gallery_project(
    project_id: str,
    payload: ProjectUpdate,
    db: DbClient = Depends(get_db_client),
):
    return gallery.update_project(db, project_id, payload.title, payload.description)


@router.delete("/admin/gallery/projects/{project_id}", status_code=204)
def delete_gallery_project(project_id: str, db: DbClient = Depends(get_db_client)):
    gallery.delete_project(db, project_id)
    return Response(status_code=204)


@router.post("/admin/gallery/projects/bulk-delete", response_model=DeleteResponse)
def bulk_delete_gallery_projects(
    payload: BulkDeletePayload, db: DbClient = Depends(get_db_client)
):
    return DeleteResponse(deleted=gallery.bulk_delete_projects(db, payload.ids))


@router.post(
    "/admin/gallery/projects/{project_id}/move", response_model=MoveResponse
)
def move_gallery_project(
    project_id: str, payload: MovePayload, db: DbClient = Depends(get_db_client)
):
    return MoveResponse(moved=gallery.move_project(db, project_id, payload.direction))


@router.post("/admin/gallery/shuffle", response_model=list[GalleryProject])
def shuffle_gallery_projects(db: DbClient = Depends(get_db_client)):
    return gallery.shuffle_projects(db)


@router.get(
    "/admin/gallery/projects/{project_id}/images",
    response_model=list[GalleryProjectImage],
)
def list_gallery_project_images(
    project_id: str, db: DbClient = Depends(get_db_client)
):
    gallery.get_project(db, project_id)
    return gallery.list_project_images(db, project_id)


@router.post(
    "/admin/gallery/projects/{project_id}/images",
    response_model=list[GalleryProjectImage],
    status_code=201,
)
async def add_gallery_project_images(
    project_id: str,
    files: list[UploadFile] = File(...),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    images = []
    for upload in files:
        data = await upload.read()
        images.append(
            gallery.add_project_image(
                db, storage, project_id, data, upload.filename, upload.content_type
            )
        )
    return images


@router.delete("/admin/gallery/images/{image_id}", status_code=204)
def delete_gallery_project_image(image_id: str, db: DbClient = Depends(get_db_client)):
    gallery.delete_project_image(db, image_id)
    return Response(status_code=204)


# Music artworks


@router.post(
    "/admin/music-artworks", response_model=MusicArtwork, status_code=201
)
def add_music_artwork(
    payload: MusicArtworkCreate, db: DbClient = Depends(get_db_client)
):
    return music.add_artwork(db, payload.youtube_url)


@router.patch("/admin/music-artworks/{artwork_id}", response_model=MusicArtwork)
def update_music_artwork(
    artwork_id: str, payload: TitleUpdate, db: DbClient = Depends(get_db_client)
):
    return music.update_title(db, artwork_id, payload.title)


@router.delete("/admin/music-artworks/{artwork_id}", status_code=204)
def delete_music_artwork(artwork_id: str, db: DbClient = Depends(get_db_client)):
    music.delete_artwork(db, artwork_id)
    return Response(status_code=204)


@router.post(
    "/admin/music-artworks/{artwork_id}/refresh", response_model=MusicArtwork
)
def refresh_music_artwork(artwork_id: str, db: DbClient = Depends(get_db_client)):
    return music.refresh_artwork(db, artwork_id)


# Websites


@router.post("/admin/websites", response_model=Website, status_code=201)
def add_website(payload: WebsiteCreate, db: DbClient = Depends(get_db_client)):
    return websites.add_website(db, payload.url)


@router.delete("/admin/websites/{website_id}", status_code=204)
def delete_website(website_id: str, db: DbClient = Depends(get_db_client)):
    websites.delete_website(db, website_id)
    return Response(status_code=204)


@router.post("/admin/websites/{website_id}/move", response_model=MoveResponse)
def move_website(
    website_id: str, payload: MovePayload, db: DbClient = Depends(get_db_client)
):
    return MoveResponse(moved=websites.move_website(db, website_id, payload.direction))


@router.post("/admin/websites/{website_id}/thumbnail", response_model=Website)
async def upload_website_thumbnail(
    website_id: str,
    file: UploadFile = File(...),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    data = await file.read()
    return websites.upload_custom_thumbnail(
        db, storage, website_id, data, file.filename, file.content_type
    )


@router.post("/admin/websites/{website_id}/regenerate", response_model=Website)
def regenerate_website_screenshot(
    website_id: str, db: DbClient = Depends(get_db_client)
):
    return websites.regenerate_screenshot(db, website_id)


# Goals & notes


@router.get("/goals", response_model=GoalsResponse)
def list_goals(db: DbClient = Depends(get_db_client)):
    return GoalsResponse(goals=goals.list_goals(db), progress=goals.progress(db))


@router.patch("/goals/{goal_id}", response_model=Goal)
def update_goal(
    goal_id: int, payload: GoalUpdate, db: DbClient = Depends(get_db_client)
):
    return goals.set_goal_date(db, goal_id, payload.target_date)


@router.post("/goals/{goal_id}/toggle", response_model=Goal)
def toggle_goal(goal_id: int, db: DbClient = Depends(get_db_client)):
    return goals.toggle_goal(db, goal_id)


@router.get("/notes", response_model=Notes)
def get_notes(db: DbClient = Depends(get_db_client)):
    return Notes(content=goals.get_notes(db))


@router.put("/notes", response_model=Notes)
def save_notes(payload: Notes, db: DbClient = Depends(get_db_client)):
    return Notes(content=goals.save_notes(db, payload.content))


# Analytics & users


@router.get("/admin/analytics", response_model=AnalyticsSummary)
def analytics_summary(db: DbClient = Depends(get_db_client)):
    return AnalyticsSummary(**analytics.summary(db))


@router.post("/admin/users", response_model=CreateUserResponse, status_code=201)
def create_admin_user(
    payload: CreateUserPayload, auth_client: AuthClient = Depends(get_auth_client)
):
    settings = get_settings()
    redirect_to = f"{settings.site_url.rstrip('/')}/admin" if settings.site_url else None
    user = auth.create_admin_user(
        auth_client, payload.email, payload.password, redirect_to=redirect_to
    )
    return CreateUserResponse(id=user.id, email=user.email)


# Compression jobs


@router.post(
    "/admin/compression-jobs", response_model=JobStatusResponse, status_code=202
)
def request_compression_sweep(
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    """
    Enqueue a compression sweep. The worker will handle the heavy lifting.
    """
    job = db.create_compression_job()
    queue.enqueue(job.job_id)
    logger.info("Queued compression sweep %s", job.job_id)
    return JobStatusResponse(**job.as_dict())


@router.get("/admin/compression-jobs/{job_id}", response_model=JobStatusResponse)
def compression_job_status(job_id: str, db: DbClient = Depends(get_db_client)):
    job = db.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.as_dict())
