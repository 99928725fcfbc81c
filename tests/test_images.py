"""
Logo image validation and optimization tests.
"""

import io

import pytest
from PIL import Image

from app.utils import images
from app.utils.images import (
    MAX_FILE_SIZE,
    ImageOptimizationError,
    detect_image_format,
    generate_optimized_versions,
    get_file_extension,
    optimize_image,
    validate_image_file,
)


def make_image(fmt: str, size=(64, 64), mode="RGB") -> bytes:
    out = io.BytesIO()
    Image.new(mode, size, color=(37, 99, 235) if mode == "RGB" else (37, 99, 235, 128)).save(out, format=fmt)
    return out.getvalue()


def test_detects_formats_from_magic_bytes():
    assert detect_image_format(make_image("PNG")) == "png"
    assert detect_image_format(make_image("JPEG")) == "jpeg"
    assert detect_image_format(make_image("WEBP")) == "webp"
    assert detect_image_format(b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg"/>') == "svg"
    assert detect_image_format(b"GIF89a....") is None


def test_rejects_oversized_file():
    data = b"\x89PNG" + b"\x00" * MAX_FILE_SIZE

    result = validate_image_file(data, "logo.png")

    assert not result.valid
    assert "5MB" in result.error


def test_rejects_unknown_extension():
    result = validate_image_file(make_image("PNG"), "logo.bmp")

    assert not result.valid


def test_optimize_png():
    data = make_image("PNG", size=(300, 200))

    optimized = optimize_image(data, "logo.png")

    assert optimized.format == "png"
    assert optimized.original_size == len(data)
    with Image.open(io.BytesIO(optimized.data)) as img:
        assert img.size == (300, 200)


def test_large_images_are_downscaled():
    data = make_image("JPEG", size=(2400, 1200))

    optimized = optimize_image(data, "logo.jpg")

    with Image.open(io.BytesIO(optimized.data)) as img:
        assert img.width == 2000
        assert img.height == 1000


def test_invalid_upload_raises():
    with pytest.raises(ImageOptimizationError):
        optimize_image(b"plain text", "logo.png")


def test_optimized_versions_offer_webp():
    versions = generate_optimized_versions(make_image("PNG", mode="RGBA"), "logo.png")

    assert versions.primary.format == "webp"
    assert versions.fallback.format == "png"
    assert detect_image_format(versions.primary.data) == "webp"


def test_file_extension():
    assert get_file_extension("jpeg") == "jpg"
    assert get_file_extension("SVG") == "svg"
    assert get_file_extension("bmp") == "png"


def test_decompression_bomb_is_rejected(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    data = make_image("PNG", size=(100, 100))

    validation = validate_image_file(data, "logo.png")

    assert not validation.valid
    assert validation.error == "Image dimensions are too large"
    with pytest.raises(ImageOptimizationError):
        optimize_image(data, "logo.png")


def test_pixel_cap_applies_below_pillow_limit(monkeypatch):
    monkeypatch.setattr(images, "MAX_PIXELS", 64 * 64 - 1)

    assert not validate_image_file(make_image("JPEG"), "logo.jpg").valid
    assert validate_image_file(make_image("JPEG", size=(32, 32)), "logo.jpg").valid
