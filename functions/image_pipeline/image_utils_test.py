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

import io
import unittest

from PIL import Image

from image_pipeline import image_utils


def _encode(image, format_name="PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=format_name)
    return buffer.getvalue()


def _transparent_palette_png(size=(40, 40)) -> bytes:
    image = Image.new("P", size, 0)
    image.putpalette([0, 0, 0, 255, 0, 0] + [0, 0, 0] * 254)
    for x in range(size[0] // 2, size[0]):
        for y in range(size[1]):
            image.putpixel((x, y), 1)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", transparency=0)
    return buffer.getvalue()


class ImageUtilsTest(unittest.TestCase):
    def test_optimize_upload_downscales_wide_images(self):
        data = _encode(Image.new("RGB", (3000, 1500), (10, 120, 200)))
        upload = image_utils.optimize_upload(data)

        self.assertEqual((upload.width, upload.height), (1920, 960))
        self.assertEqual(upload.content_type, "image/webp")
        self.assertAlmostEqual(upload.aspect_ratio, 2.0)
        self.assertEqual(Image.open(io.BytesIO(upload.data)).format, "WEBP")

    def test_optimize_upload_keeps_small_images(self):
        data = _encode(Image.new("RGBA", (300, 400), (0, 0, 0, 128)))
        upload = image_utils.optimize_upload(data)
        self.assertEqual((upload.width, upload.height), (300, 400))

    def test_optimize_upload_keeps_palette_transparency(self):
        upload = image_utils.optimize_upload(_transparent_palette_png())

        result = Image.open(io.BytesIO(upload.data))
        self.assertIn("A", result.getbands())
        rgba = result.convert("RGBA")
        self.assertEqual(rgba.getpixel((0, 0))[3], 0)
        self.assertEqual(rgba.getpixel((39, 0))[3], 255)

    def test_optimize_upload_resizes_palette_images_with_alpha(self):
        upload = image_utils.optimize_upload(_transparent_palette_png((80, 40)), max_width=40)

        self.assertEqual((upload.width, upload.height), (40, 20))
        self.assertIn("A", Image.open(io.BytesIO(upload.data)).getbands())

    def test_optimize_upload_opaque_palette_has_no_alpha(self):
        data = _encode(Image.new("P", (20, 20), 3))
        upload = image_utils.optimize_upload(data)
        self.assertNotIn("A", Image.open(io.BytesIO(upload.data)).getbands())

    def test_optimize_upload_rejects_non_images(self):
        with self.assertRaises(image_utils.InvalidImageError):
            image_utils.optimize_upload(b"%PDF-1.4")

    def test_to_rgb_flattens_palette_images(self):
        image = Image.new("P", (4, 4))
        self.assertEqual(image_utils.to_rgb(image).mode, "RGB")

    def test_to_rgb_puts_transparent_pixels_on_white(self):
        image = Image.open(io.BytesIO(_transparent_palette_png()))
        flattened = image_utils.to_rgb(image)
        self.assertEqual(flattened.getpixel((0, 0)), (255, 255, 255))
        self.assertEqual(flattened.getpixel((39, 0)), (255, 0, 0))

    def test_is_image_content_type(self):
        self.assertTrue(image_utils.is_image_content_type("image/png"))
        self.assertFalse(image_utils.is_image_content_type("text/plain"))
        self.assertFalse(image_utils.is_image_content_type(None))


if __name__ == "__main__":
    unittest.main()
