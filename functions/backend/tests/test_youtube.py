import unittest
from unittest.mock import MagicMock, patch

import requests

from backend import youtube
from shared.errors import UpstreamError

VIDEO_ID = "dQw4w9WgXcQ"


class ExtractVideoIdTests(unittest.TestCase):
    def test_supported_forms(self):
        urls = [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtube.com/watch?feature=share&v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}?t=10",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/shorts/{VIDEO_ID}",
            f"https://www.youtube.com/live/{VIDEO_ID}",
            f"https://music.youtube.com/watch?v={VIDEO_ID}",
            f"youtu.be/{VIDEO_ID}",
        ]
        for url in urls:
            with self.subTest(url=url):
                self.assertEqual(youtube.extract_video_id(url), VIDEO_ID)

    def test_rejects_other_urls(self):
        for url in (
            "",
            "https://vimeo.com/123",
            "https://www.youtube.com/watch?v=short",
            "https://www.youtube.com/channel/abc",
        ):
            with self.subTest(url=url):
                self.assertIsNone(youtube.extract_video_id(url))


class FetchYouTubeInfoTests(unittest.TestCase):
    @patch("backend.youtube.requests.head")
    @patch("backend.youtube.requests.get")
    def test_uses_oembed_title_and_maxres_thumbnail(self, mock_get, mock_head):
        mock_get.return_value = MagicMock(json=MagicMock(return_value={"title": "Night Drive"}))
        mock_head.return_value = MagicMock(ok=True)

        info = youtube.fetch_youtube_info(f"https://youtu.be/{VIDEO_ID}")

        self.assertEqual(info.video_id, VIDEO_ID)
        self.assertEqual(info.title, "Night Drive")
        self.assertEqual(
            info.thumbnail_url, f"https://img.youtube.com/vi/{VIDEO_ID}/maxresdefault.jpg"
        )
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs["params"]["url"], f"https://www.youtube.com/watch?v={VIDEO_ID}")

    @patch("backend.youtube.requests.head")
    @patch("backend.youtube.requests.get")
    def test_falls_back_to_hq_thumbnail(self, mock_get, mock_head):
        mock_get.return_value = MagicMock(json=MagicMock(return_value={"title": "T"}))
        mock_head.return_value = MagicMock(ok=False)

        info = youtube.fetch_youtube_info(f"https://youtu.be/{VIDEO_ID}")
        self.assertTrue(info.thumbnail_url.endswith("/hqdefault.jpg"))

    def test_invalid_url(self):
        with self.assertRaises(youtube.YouTubeLookupError):
            youtube.fetch_youtube_info("https://example.com")

    @patch("backend.youtube.requests.get")
    def test_oembed_failure(self, mock_get):
        mock_get.return_value.raise_for_status.side_effect = requests.HTTPError("404")
        with self.assertRaises(UpstreamError):
            youtube.fetch_youtube_info(f"https://youtu.be/{VIDEO_ID}")


if __name__ == "__main__":
    unittest.main()
