import base64
import io

import pytest
from PIL import Image

from backend.errors import BadImageFormatError, ImageTooLargeError
from backend.imaging import CropBox, ImageProcessor, resolve_format
from tests.helpers import make_image


@pytest.fixture
def processor():
    return ImageProcessor(max_size=1024 * 1024)


def test_resolve_format_keeps_jpeg():
    resolved = resolve_format("photo.JPG", "image/jpeg")
    assert resolved.pil_format == "JPEG"
    assert resolved.extension == "jpg"
    assert resolved.quality == 95


def test_resolve_format_maps_heic_to_jpg():
    resolved = resolve_format("IMG_0001.heic", "image/heic")
    assert resolved.pil_format == "JPEG"
    assert resolved.extension == "jpg"
    assert resolved.quality == 85


def test_resolve_format_falls_back_to_mime_then_png():
    assert resolve_format("upload", "image/webp").extension == "webp"
    assert resolve_format("upload", "application/octet-stream").pil_format == "PNG"


def test_validate_upload_accepts_jpeg(processor):
    processor.validate_upload("cat.jpg", "image/jpeg", 2048)


def test_validate_upload_rejects_empty(processor):
    with pytest.raises(BadImageFormatError, match="No image file provided"):
        processor.validate_upload("cat.jpg", "image/jpeg", 0)


def test_validate_upload_rejects_oversized(processor):
    with pytest.raises(ImageTooLargeError) as exc_info:
        processor.validate_upload("cat.jpg", "image/jpeg", 2 * 1024 * 1024)
    assert exc_info.value.status_code == 413


def test_validate_upload_rejects_type(processor):
    with pytest.raises(BadImageFormatError):
        processor.validate_upload("doc.pdf", "application/pdf", 100)


def test_validate_upload_rejects_traversal(processor):
    with pytest.raises(BadImageFormatError, match="path traversal"):
        processor.validate_upload("../../etc/x.png", "image/png", 100)


def test_read_dimensions(processor):
    assert processor.read_dimensions(make_image(320, 240)) == (320, 240)


def test_read_dimensions_rejects_garbage(processor):
    with pytest.raises(BadImageFormatError):
        processor.read_dimensions(b"definitely not an image")


def test_analysis_payload_passes_web_formats_through(processor):
    data = make_image(fmt="PNG")
    payload, mime = processor.analysis_payload(data, "image/png")
    assert mime == "image/png"
    assert base64.b64decode(payload) == data


def test_analysis_payload_converts_bmp_to_png(processor):
    payload, mime = processor.analysis_payload(make_image(fmt="BMP"), "image/bmp")
    assert mime == "image/png"
    with Image.open(io.BytesIO(base64.b64decode(payload))) as image:
        assert image.format == "PNG"


def test_smart_crop_jpeg(processor):
    output = processor.perform_smart_crop(
        make_image(400, 300), CropBox(50, 40, 200, 150), "cat.jpg", "image/jpeg"
    )
    assert output.extension == "jpg"
    assert output.mime_type == "image/jpeg"
    assert output.metadata["original"] == {"width": 400, "height": 300}
    with Image.open(io.BytesIO(output.data)) as image:
        assert image.size == (200, 150)


def test_smart_crop_png_keeps_alpha(processor):
    output = processor.perform_smart_crop(
        make_image(300, 300, fmt="PNG", mode="RGBA"),
        CropBox(0, 0, 150, 150),
        "logo.png",
        "image/png",
    )
    with Image.open(io.BytesIO(output.data)) as image:
        assert image.format == "PNG"
        assert image.mode == "RGBA"


def test_smart_crop_bmp_becomes_png(processor):
    output = processor.perform_smart_crop(
        make_image(300, 200, fmt="BMP"), CropBox(10, 10, 100, 100), "scan.bmp", "image/bmp"
    )
    assert output.extension == "png"
    with Image.open(io.BytesIO(output.data)) as image:
        assert image.format == "PNG"


def test_smart_crop_gif(processor):
    output = processor.perform_smart_crop(
        make_image(200, 200, fmt="GIF", mode="P", color=3),
        CropBox(0, 0, 120, 120),
        "anim.gif",
        "image/gif",
    )
    with Image.open(io.BytesIO(output.data)) as image:
        assert image.format == "GIF"
        assert image.size == (120, 120)


def test_smart_crop_clamps_box_near_edge(processor):
    output = processor.perform_smart_crop(
        make_image(400, 300), CropBox(390, 290, 200, 200), "cat.jpg", "image/jpeg"
    )
    assert output.crop_area == CropBox(350, 250, 50, 50)


def test_smart_crop_reports_operations(processor):
    output = processor.perform_smart_crop(
        make_image(400, 300), CropBox(0, 0, 200, 150), "cat.jpg", "image/jpeg"
    )
    assert "cropped" in output.metadata["operations"]


def test_decompression_bomb_is_bad_format(processor, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    data = make_image(400, 300)

    with pytest.raises(BadImageFormatError):
        processor.read_dimensions(data)
    with pytest.raises(BadImageFormatError):
        processor.open_image(data)
