"""
Pydantic schemas for the studio API.

Table rows are returned with their column names; the function endpoints
speak camelCase JSON like the edge functions they replace.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.types import ImageType, MoveDirection


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: Literal["ok"]


class GalleryProject(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    main_image_url: str
    aspect_ratio: Optional[float] = None
    display_order: int
    created_at: Optional[datetime] = None


class GalleryProjectImage(BaseModel):
    id: str
    project_id: str
    image_url: str
    display_order: int
    created_at: Optional[datetime] = None


class GalleryProjectDetail(GalleryProject):
    images: list[GalleryProjectImage] = []


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


class BulkDeletePayload(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class DeleteResponse(BaseModel):
    deleted: int


class MovePayload(BaseModel):
    direction: MoveDirection


class MoveResponse(BaseModel):
    moved: bool


class MusicArtwork(BaseModel):
    id: str
    youtube_url: str
    youtube_video_id: str
    title: str
    thumbnail_url: str
    display_order: int
    created_at: Optional[datetime] = None


class MusicArtworkCreate(BaseModel):
    youtube_url: str = Field(..., min_length=1, max_length=500)


class TitleUpdate(BaseModel):
    title: str = Field(..., max_length=200)


class Website(BaseModel):
    id: str
    url: str
    title: str
    thumbnail_url: Optional[str] = None
    custom_thumbnail_url: Optional[str] = None
    display_order: int
    created_at: Optional[datetime] = None


class WebsiteCreate(BaseModel):
    url: str = Field(..., max_length=500)


class Goal(BaseModel):
    id: int
    checked: bool
    target_date: Optional[date] = None


class GoalProgress(BaseModel):
    completed: int
    total: int
    percent: int


class GoalsResponse(BaseModel):
    goals: list[Goal]
    progress: GoalProgress


class GoalUpdate(BaseModel):
    target_date: Optional[date] = None


class Notes(BaseModel):
    content: str = Field("", max_length=100_000)


class PageVisitPayload(BaseModel):
    page_path: str = Field(..., min_length=1, max_length=500)
    country: Optional[str] = Field(None, max_length=64)


class EmailClickPayload(BaseModel):
    email: Optional[str] = Field(None, max_length=320)
    page_path: Optional[str] = Field(None, max_length=500)


class CountryCount(CamelModel):
    country: str
    count: int


class PageCount(CamelModel):
    page: str
    count: int


class AnalyticsSummary(CamelModel):
    total_visits: int
    today_visits: int
    email_clicks: int
    top_countries: list[CountryCount]
    pages: list[PageCount]


class CreateUserPayload(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)


class CreateUserResponse(BaseModel):
    id: str
    email: Optional[str] = None


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    stage: Optional[str] = None
    progress_percent: Optional[float] = None
    result: Optional[dict] = None


class CompressImageRequest(CamelModel):
    mode: Literal["list", "compress"] = "list"
    project_id: Optional[str] = None
    image_id: Optional[str] = None
    image_type: Optional[ImageType] = None


class GalleryImageInfo(CamelModel):
    id: str
    project_id: str
    image_type: ImageType
    url: str
    size: Optional[int] = None
    needs_compression: bool


class CompressImageListResponse(CamelModel):
    images: list[GalleryImageInfo]


class CompressImageResponse(CamelModel):
    success: bool
    compressed: bool
    original_size: int
    new_size: int
    url: Optional[str] = None


class CompressionDetail(CamelModel):
    id: str
    type: ImageType
    original_size: int
    new_size: int


class CompressGalleryResponse(CamelModel):
    processed: int
    compressed: int
    skipped: int
    failed: int
    details: list[CompressionDetail]


class FetchYouTubeInfoRequest(CamelModel):
    url: str = Field(..., max_length=500)


class YouTubeInfoResponse(CamelModel):
    video_id: str
    title: str
    thumbnail_url: str
