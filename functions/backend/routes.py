"""
Public HTTP routes: portfolio listings and visitor tracking.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from backend import analytics, gallery, music, websites
from backend.db import DbClient
from backend.dependencies import get_db_client
from backend.schemas import (
    EmailClickPayload,
    GalleryProject,
    GalleryProjectDetail,
    HealthResponse,
    MusicArtwork,
    PageVisitPayload,
    Website,
)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/gallery/projects", response_model=list[GalleryProject])
def list_gallery_projects(db: DbClient = Depends(get_db_client)):
    return gallery.list_projects(db)


@router.get("/gallery/projects/{project_id}", response_model=GalleryProjectDetail)
def get_gallery_project(project_id: str, db: DbClient = Depends(get_db_client)):
    project = gallery.get_project(db, project_id)
    return {**project, "images": gallery.list_project_images(db, project_id)}


@router.get("/music-artworks", response_model=list[MusicArtwork])
def list_music_artworks(db: DbClient = Depends(get_db_client)):
    return music.list_artworks(db)


@router.get("/websites", response_model=list[Website])
def list_websites(db: DbClient = Depends(get_db_client)):
    return websites.list_websites(db)


@router.post("/analytics/visits", status_code=204)
def record_visit(
    payload: PageVisitPayload,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    country = payload.country or analytics.country_from_headers(request.headers)
    analytics.record_page_visit(db, payload.page_path, country)
    return Response(status_code=204)


@router.post("/analytics/email-clicks", status_code=204)
def record_email_click(
    payload: EmailClickPayload, db: DbClient = Depends(get_db_client)
):
    analytics.record_email_click(db, payload.email, payload.page_path)
    return Response(status_code=204)
