"""
Logo image validation and optimization.

Format sniffing and size checks happen here; decoding and re-encoding is
delegated to Pillow.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError


logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
MAX_WIDTH = 2000
MAX_HEIGHT = 2000
MAX_PIXELS = 40_000_000
WEBP_QUALITY = 80
JPEG_QUALITY = 85
PNG_COMPRESSION = 9
SUPPORTED_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "svg")

PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG", "webp": "WEBP"}


class ImageOptimizationError(ValueError):
    """Raised when an upload is not an acceptable image."""


@dataclass
class ImageValidation:
    valid: bool
    error: Optional[str] = None


@dataclass
class OptimizedImage:
    data: bytes
    format: str
    original_size: int
    optimized_size: int
    compression_ratio: float


@dataclass
class ImageVersion:
    data: bytes
    format: str
    size: int


@dataclass
class OptimizedVersions:
    primary: ImageVersion
    fallback: ImageVersion
    original_size: int
    total_savings: int


def detect_image_format(data: bytes) -> Optional[str]:
    """Identify PNG, JPEG, WebP or SVG from the leading bytes."""
    if len(data) >= 8 and data[:4] == b"\x89PNG":
        return "png"
    if len(data) >= 2 and data[:2] == b"\xff\xd8":
        return "jpeg"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if b"<svg" in data[:100]:
        return "svg"
    return None


def _too_many_pixels(data: bytes) -> bool:
    """Read only the header; unreadable files are left to the optimizer fallback."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except Image.DecompressionBombError:
        return True
    except (OSError, UnidentifiedImageError, ValueError):
        return False
    return width * height > MAX_PIXELS


def validate_image_file(data: bytes, filename: str) -> ImageValidation:
    """Check size, detected format and file extension."""
    if len(data) > MAX_FILE_SIZE:
        return ImageValidation(
            valid=False,
            error=f"File size exceeds maximum of {MAX_FILE_SIZE // (1024 * 1024)}MB",
        )

    fmt = detect_image_format(data)
    if fmt is None:
        return ImageValidation(
            valid=False,
            error="Unsupported image format. Please use PNG, JPG, WebP, or SVG.",
        )

    if fmt in PIL_FORMATS and _too_many_pixels(data):
        return ImageValidation(
            valid=False,
            error="Image dimensions are too large",
        )

    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext and ext not in SUPPORTED_EXTENSIONS:
        return ImageValidation(
            valid=False,
            error="Unsupported file extension. Please use PNG, JPG, WebP, or SVG.",
        )

    return ImageValidation(valid=True)


def _reencode(data: bytes, fmt: str, **save_kwargs) -> bytes:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.width > MAX_WIDTH or img.height > MAX_HEIGHT:
            img.thumbnail((MAX_WIDTH, MAX_HEIGHT))
        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        out = io.BytesIO()
        img.save(out, format=fmt, **save_kwargs)
        return out.getvalue()


def optimize_png(data: bytes) -> bytes:
    try:
        return _reencode(data, "PNG", optimize=True, compress_level=PNG_COMPRESSION)
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
        logger.error(f"PNG optimization failed: {exc}")
        return data


def optimize_jpeg(data: bytes) -> bytes:
    try:
        return _reencode(data, "JPEG", quality=JPEG_QUALITY, progressive=True, optimize=True)
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
        logger.error(f"JPEG optimization failed: {exc}")
        return data


def convert_to_webp(data: bytes) -> bytes:
    """Re-encode as WebP, returning the input unchanged if Pillow cannot."""
    try:
        return _reencode(data, "WEBP", quality=WEBP_QUALITY)
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
        logger.error(f"WebP conversion failed: {exc}")
        return data


def optimize_image(data: bytes, filename: str) -> OptimizedImage:
    """
    Validate and compress an uploaded image.

    WebP and SVG are passed through untouched.

    Raises:
        ImageOptimizationError: If the file fails validation
    """
    validation = validate_image_file(data, filename)
    if not validation.valid:
        raise ImageOptimizationError(validation.error or "Invalid image file")

    fmt = detect_image_format(data)
    if fmt == "png":
        optimized = optimize_png(data)
    elif fmt == "jpeg":
        optimized = optimize_jpeg(data)
    else:
        optimized = data

    original_size = len(data)
    optimized_size = len(optimized)
    ratio = (1 - optimized_size / original_size) * 100

    return OptimizedImage(
        data=optimized,
        format=fmt,
        original_size=original_size,
        optimized_size=optimized_size,
        compression_ratio=round(ratio, 2),
    )


def generate_optimized_versions(data: bytes, filename: str) -> OptimizedVersions:
    """Produce a WebP primary and an optimized original-format fallback."""
    optimized = optimize_image(data, filename)

    if optimized.format == "svg":
        webp = optimized.data
    else:
        webp = convert_to_webp(optimized.data)

    original_size = len(data)
    return OptimizedVersions(
        primary=ImageVersion(data=webp, format="webp", size=len(webp)),
        fallback=ImageVersion(
            data=optimized.data,
            format=optimized.format,
            size=optimized.optimized_size,
        ),
        original_size=original_size,
        total_savings=original_size - min(len(webp), optimized.optimized_size),
    )


def get_file_extension(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt in ("jpeg", "jpg"):
        return "jpg"
    if fmt in ("png", "webp", "svg"):
        return fmt
    return "png"
