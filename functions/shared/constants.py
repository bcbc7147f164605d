# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# Tables
GALLERY_PROJECTS_TABLE = "gallery_projects"
GALLERY_PROJECT_IMAGES_TABLE = "gallery_project_images"
MUSIC_ARTWORKS_TABLE = "music_artworks"
WEBSITES_TABLE = "websites"
GOALS_TABLE = "goals"
NOTES_TABLE = "notes"
PAGE_VISITS_TABLE = "page_visits"
EMAIL_CLICKS_TABLE = "email_clicks"
COMPRESSION_JOBS_TABLE = "compression_jobs"

CRUD_TABLES = (
    GALLERY_PROJECTS_TABLE,
    GALLERY_PROJECT_IMAGES_TABLE,
    MUSIC_ARTWORKS_TABLE,
    WEBSITES_TABLE,
    GOALS_TABLE,
    NOTES_TABLE,
    PAGE_VISITS_TABLE,
    EMAIL_CLICKS_TABLE,
)

# Object storage
GALLERY_BUCKET = "gallery"
PROJECT_IMAGE_PREFIX = "projects"

# Image handling
MAX_IMAGE_BYTES = 512 * 1024
DEFAULT_START_QUALITY = 85
MIN_QUALITY = 30
QUALITY_STEP = 10
UPLOAD_MAX_WIDTH = 1920
UPLOAD_QUALITY = 85

# Goals page
NOTES_ROW_ID = 1
TOTAL_GOALS = 500

# Analytics
TOP_COUNTRIES_LIMIT = 10
