import io
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from PIL import Image

from backend import dependencies
from backend.app import create_app
from backend.auth import InMemoryAuthClient
from backend.db import InMemoryDbClient
from backend.queue import InMemoryJobQueue
from backend.storage import InMemoryStorageClient
from image_pipeline.compressor import PillowCompressor
from image_pipeline.fetch_utils import FetchedImage
from shared import constants
from shared.types import YouTubeInfo

ADMIN_TOKEN = "test-admin-token"


def _png_bytes(size=(40, 20), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.queue = InMemoryJobQueue()
        self.auth = InMemoryAuthClient()
        self.auth.add_token(ADMIN_TOKEN, "admin@example.com")
        self.compressor = PillowCompressor()

        app = create_app()
        app.dependency_overrides[dependencies.get_db_client] = lambda: self.db
        app.dependency_overrides[dependencies.get_storage_client] = lambda: self.storage
        app.dependency_overrides[dependencies.get_queue_client] = lambda: self.queue
        app.dependency_overrides[dependencies.get_auth_client] = lambda: self.auth
        app.dependency_overrides[dependencies.get_compressor] = lambda: self.compressor
        self.client = TestClient(app, raise_server_exceptions=False)
        self.headers = {"Authorization": f"Bearer {ADMIN_TOKEN}"}

    def add_project(self, order, url=None):
        return self.db.insert(
            constants.GALLERY_PROJECTS_TABLE,
            {
                "main_image_url": url or f"https://cdn.test/{order}.jpg",
                "display_order": order,
            },
        )


class PublicApiTests(ApiTestCase):
    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_projects_listed_by_display_order(self):
        second = self.add_project(2)
        first = self.add_project(1)
        response = self.client.get("/api/gallery/projects")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["id"] for p in response.json()], [first["id"], second["id"]])

    def test_project_detail_includes_sub_images(self):
        project = self.add_project(1)
        self.db.insert(
            constants.GALLERY_PROJECT_IMAGES_TABLE,
            {"project_id": project["id"], "image_url": "https://cdn.test/a.jpg", "display_order": 1},
        )
        response = self.client.get(f"/api/gallery/projects/{project['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["images"]), 1)

    def test_unknown_project_returns_error_body(self):
        response = self.client.get("/api/gallery/projects/missing")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Project not found"})

    def test_record_visit_uses_country_header(self):
        response = self.client.post(
            "/api/analytics/visits",
            json={"page_path": "/music"},
            headers={"cf-ipcountry": "de"},
        )
        self.assertEqual(response.status_code, 204)
        visits = self.db.select(constants.PAGE_VISITS_TABLE)
        self.assertEqual(len(visits), 1)
        self.assertEqual(visits[0]["country"], "DE")

    def test_record_email_click(self):
        response = self.client.post(
            "/api/analytics/email-clicks",
            json={"email": "hi@studio.test", "page_path": "/"},
        )
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.db.count(constants.EMAIL_CLICKS_TABLE), 1)

    def test_unhandled_errors_return_500(self):
        with patch("backend.gallery.list_projects", side_effect=RuntimeError("boom")):
            response = self.client.get("/api/gallery/projects")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Internal server error"})


class AdminAuthTests(ApiTestCase):
    def test_missing_token_is_rejected(self):
        response = self.client.get("/api/goals")
        self.assertEqual(response.status_code, 401)

    def test_unknown_token_is_rejected(self):
        response = self.client.get(
            "/api/admin/analytics", headers={"Authorization": "Bearer nope"}
        )
        self.assertEqual(response.status_code, 401)

    def test_function_routes_require_admin(self):
        response = self.client.post(
            "/api/functions/fetch-youtube-info", json={"url": "https://youtu.be/x"}
        )
        self.assertEqual(response.status_code, 401)


class AdminGalleryTests(ApiTestCase):
    def test_upload_creates_projects_in_order(self):
        files = [
            ("files", ("a.png", _png_bytes((40, 20)), "image/png")),
            ("files", ("b.png", _png_bytes((10, 20)), "image/png")),
        ]
        response = self.client.post(
            "/api/admin/gallery/projects", files=files, headers=self.headers
        )
        self.assertEqual(response.status_code, 201)
        projects = response.json()
        self.assertEqual([p["display_order"] for p in projects], [1, 2])
        self.assertAlmostEqual(projects[0]["aspect_ratio"], 2.0)
        self.assertAlmostEqual(projects[1]["aspect_ratio"], 0.5)
        self.assertEqual(len(self.storage.stored_objects), 2)
        for path in self.storage.stored_objects:
            self.assertTrue(path.startswith("projects/"))
            self.assertTrue(path.endswith(".webp"))

    def test_upload_rejects_non_images(self):
        files = [("files", ("notes.txt", b"hello", "text/plain"))]
        response = self.client.post(
            "/api/admin/gallery/projects", files=files, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_update_stores_empty_strings_as_null(self):
        project = self.add_project(1)
        response = self.client.patch(
            f"/api/admin/gallery/projects/{project['id']}",
            json={"title": "Poster", "description": ""},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "Poster")
        self.assertIsNone(response.json()["description"])

    def test_bulk_delete_removes_only_targeted_projects(self):
        keep = self.add_project(1)
        drop_a = self.add_project(2)
        drop_b = self.add_project(3)
        self.db.insert(
            constants.GALLERY_PROJECT_IMAGES_TABLE,
            {"project_id": drop_a["id"], "image_url": "https://cdn.test/s.jpg"},
        )
        response = self.client.post(
            "/api/admin/gallery/projects/bulk-delete",
            json={"ids": [drop_a["id"], drop_b["id"]]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"deleted": 2})
        remaining = self.db.select(constants.GALLERY_PROJECTS_TABLE)
        self.assertEqual([p["id"] for p in remaining], [keep["id"]])
        self.assertEqual(self.db.select(constants.GALLERY_PROJECT_IMAGES_TABLE), [])

    def test_move_swaps_neighbours(self):
        first = self.add_project(1)
        second = self.add_project(2)
        response = self.client.post(
            f"/api/admin/gallery/projects/{second['id']}/move",
            json={"direction": "up"},
            headers=self.headers,
        )
        self.assertEqual(response.json(), {"moved": True})
        self.assertEqual(self.db.get(constants.GALLERY_PROJECTS_TABLE, second["id"])["display_order"], 1)
        self.assertEqual(self.db.get(constants.GALLERY_PROJECTS_TABLE, first["id"])["display_order"], 2)

    def test_move_at_edge_is_noop(self):
        first = self.add_project(1)
        response = self.client.post(
            f"/api/admin/gallery/projects/{first['id']}/move",
            json={"direction": "up"},
            headers=self.headers,
        )
        self.assertEqual(response.json(), {"moved": False})

    def test_shuffle_assigns_consecutive_orders(self):
        for order in (3, 7, 9):
            self.add_project(order)
        response = self.client.post("/api/admin/gallery/shuffle", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["display_order"] for p in response.json()], [1, 2, 3])

    def test_sub_images_append_after_existing(self):
        project = self.add_project(1)
        files = [("files", ("s.png", _png_bytes(), "image/png"))]
        url = f"/api/admin/gallery/projects/{project['id']}/images"
        self.client.post(url, files=files, headers=self.headers)
        response = self.client.post(url, files=files, headers=self.headers)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()[0]["display_order"], 2)

        listed = self.client.get(url, headers=self.headers).json()
        self.assertEqual(len(listed), 2)
        delete = self.client.delete(
            f"/api/admin/gallery/images/{listed[0]['id']}", headers=self.headers
        )
        self.assertEqual(delete.status_code, 204)

    def test_sub_image_for_missing_project_is_404(self):
        files = [("files", ("s.png", _png_bytes(), "image/png"))]
        response = self.client.post(
            "/api/admin/gallery/projects/missing/images", files=files, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)


class AdminContentTests(ApiTestCase):
    @patch("backend.youtube.fetch_youtube_info")
    def test_add_music_artwork(self, mock_info):
        mock_info.return_value = YouTubeInfo(
            video_id="dQw4w9WgXcQ",
            title="Track",
            thumbnail_url="https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
        )
        response = self.client.post(
            "/api/admin/music-artworks",
            json={"youtube_url": "https://youtu.be/dQw4w9WgXcQ"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["youtube_video_id"], "dQw4w9WgXcQ")
        self.assertEqual(payload["display_order"], 1)

        renamed = self.client.patch(
            f"/api/admin/music-artworks/{payload['id']}",
            json={"title": "  New  "},
            headers=self.headers,
        )
        self.assertEqual(renamed.json()["title"], "New")

    def test_add_website_normalizes_url(self):
        response = self.client.post(
            "/api/admin/websites", json={"url": " studio.test/work "}, headers=self.headers
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["url"], "https://studio.test/work")
        self.assertEqual(payload["title"], "studio.test")
        self.assertIn("api.microlink.io", payload["thumbnail_url"])

    def test_add_website_rejects_blank_url(self):
        response = self.client.post(
            "/api/admin/websites", json={"url": "   "}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)

    def test_website_thumbnail_upload_and_regenerate(self):
        website = self.client.post(
            "/api/admin/websites", json={"url": "https://studio.test"}, headers=self.headers
        ).json()
        upload = self.client.post(
            f"/api/admin/websites/{website['id']}/thumbnail",
            files={"file": ("t.png", _png_bytes(), "image/png")},
            headers=self.headers,
        )
        self.assertEqual(upload.status_code, 200)
        self.assertIn(f"website-{website['id']}-", upload.json()["custom_thumbnail_url"])

        regenerated = self.client.post(
            f"/api/admin/websites/{website['id']}/regenerate", headers=self.headers
        ).json()
        self.assertIsNone(regenerated["custom_thumbnail_url"])
        self.assertIn("&timestamp=", regenerated["thumbnail_url"])

    def test_toggle_goal_sets_date_once(self):
        self.db.insert(constants.GOALS_TABLE, {"id": 1, "checked": False})
        response = self.client.post("/api/goals/1/toggle", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["checked"])
        self.assertIsNotNone(response.json()["target_date"])

        goals = self.client.get("/api/goals", headers=self.headers).json()
        self.assertEqual(goals["progress"]["completed"], 1)
        self.assertEqual(goals["progress"]["total"], constants.TOTAL_GOALS)

    def test_set_goal_date(self):
        self.db.insert(constants.GOALS_TABLE, {"id": 4, "checked": False})
        response = self.client.patch(
            "/api/goals/4", json={"target_date": "2026-03-01"}, headers=self.headers
        )
        self.assertEqual(response.json()["target_date"], "2026-03-01")

    def test_notes_roundtrip(self):
        self.assertEqual(self.client.get("/api/notes", headers=self.headers).json(), {"content": ""})
        self.client.put("/api/notes", json={"content": "ship it"}, headers=self.headers)
        self.assertEqual(
            self.client.get("/api/notes", headers=self.headers).json(), {"content": "ship it"}
        )

    def test_analytics_summary_is_camel_case(self):
        self.client.post("/api/analytics/visits", json={"page_path": "/", "country": "FR"})
        self.client.post("/api/analytics/email-clicks", json={"page_path": "/"})
        response = self.client.get("/api/admin/analytics", headers=self.headers)
        payload = response.json()
        self.assertEqual(payload["totalVisits"], 1)
        self.assertEqual(payload["todayVisits"], 1)
        self.assertEqual(payload["emailClicks"], 1)
        self.assertEqual(payload["topCountries"], [{"country": "FR", "count": 1}])

    def test_create_admin_user_validates_password(self):
        response = self.client.post(
            "/api/admin/users",
            json={"email": "new@studio.test", "password": "123"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/admin/users",
            json={"email": "new@studio.test", "password": "123456"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["email"], "new@studio.test")

    def test_compression_job_is_queued(self):
        response = self.client.post("/api/admin/compression-jobs", headers=self.headers)
        self.assertEqual(response.status_code, 202)
        job_id = response.json()["job_id"]
        self.assertEqual(response.json()["status"], "WAITING")
        self.assertEqual(list(self.queue.items), [job_id])

        status = self.client.get(f"/api/admin/compression-jobs/{job_id}", headers=self.headers)
        self.assertEqual(status.json()["status"], "WAITING")


class FunctionRouteTests(ApiTestCase):
    @patch("image_pipeline.fetch_utils.fetch_sizes")
    def test_list_mode_reports_sizes(self, mock_sizes):
        big = self.add_project(1, url="https://cdn.test/big.jpg")
        self.add_project(2, url="https://cdn.test/small.jpg")
        mock_sizes.return_value = {
            "https://cdn.test/big.jpg": constants.MAX_IMAGE_BYTES + 1,
            "https://cdn.test/small.jpg": 1000,
        }
        response = self.client.post(
            "/api/functions/compress-image", json={"mode": "list"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        images = response.json()["images"]
        self.assertEqual(len(images), 2)
        self.assertEqual(images[0]["projectId"], big["id"])
        self.assertEqual(images[0]["imageType"], "main")
        self.assertTrue(images[0]["needsCompression"])
        self.assertFalse(images[1]["needsCompression"])

    @patch("image_pipeline.fetch_utils.fetch_image")
    def test_compress_mode_skips_small_image(self, mock_fetch):
        project = self.add_project(1)
        data = _png_bytes()
        mock_fetch.return_value = FetchedImage(
            url=project["main_image_url"], data=data, content_type="image/png"
        )
        response = self.client.post(
            "/api/functions/compress-image",
            json={"mode": "compress", "projectId": project["id"], "imageType": "main"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "success": True,
                "compressed": False,
                "originalSize": len(data),
                "newSize": len(data),
                "url": project["main_image_url"],
            },
        )
        self.assertEqual(self.storage.stored_objects, {})

    def test_compress_mode_requires_image_type(self):
        response = self.client.post(
            "/api/functions/compress-image",
            json={"mode": "compress", "projectId": "x"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    @patch("image_pipeline.fetch_utils.fetch_image")
    @patch("image_pipeline.fetch_utils.fetch_sizes")
    def test_sweep_returns_camel_case_summary(self, mock_sizes, mock_fetch):
        self.add_project(1, url="https://cdn.test/small.jpg")
        mock_sizes.return_value = {"https://cdn.test/small.jpg": 10}
        response = self.client.post(
            "/api/functions/compress-gallery-images", headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"processed": 1, "compressed": 0, "skipped": 1, "failed": 0, "details": []},
        )
        mock_fetch.assert_not_called()

    @patch("backend.youtube.fetch_youtube_info")
    def test_fetch_youtube_info(self, mock_info):
        mock_info.return_value = YouTubeInfo(
            video_id="abcdefghijk", title="Song", thumbnail_url="https://img.test/t.jpg"
        )
        response = self.client.post(
            "/api/functions/fetch-youtube-info",
            json={"url": "https://youtu.be/abcdefghijk"},
            headers=self.headers,
        )
        self.assertEqual(
            response.json(),
            {"videoId": "abcdefghijk", "title": "Song", "thumbnailUrl": "https://img.test/t.jpg"},
        )

    def test_fetch_youtube_info_rejects_bad_url(self):
        response = self.client.post(
            "/api/functions/fetch-youtube-info",
            json={"url": "https://example.com/video"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
