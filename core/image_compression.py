"""
Best-effort portrait compression.

Large uploads are re-encoded with Pillow so they fit under a size ceiling
before they go to storage. This never fails from the caller's point of
view: anything that goes wrong (unreadable image, unsupported format, a
result bigger than the input) hands back the original upload.

Pillow work is CPU-bound; async callers should run compress_image() in a
thread pool.
"""

import io
import logging

from PIL import Image, ImageOps

from core.config import MAX_PHOTO_DIMENSION, MAX_PHOTO_SIZE_KB
from core.models import PhotoUpload

logger = logging.getLogger(__name__)

# Quality ladder for lossy formats, tried until the result fits
QUALITY_STEPS = (85, 75, 65, 55, 45, 35)
LOSSY_FORMATS = {"JPEG", "WEBP"}


def compress_image(
    upload: PhotoUpload,
    max_size_kb: int = MAX_PHOTO_SIZE_KB,
    max_dimension: int = MAX_PHOTO_DIMENSION,
) -> PhotoUpload:
    """
    Shrink an uploaded image to at most max_size_kb where possible.

    Returns:
        The input unchanged when it is not an image or already small enough,
        when re-encoding fails, or when re-encoding made it larger.
        Otherwise a new PhotoUpload with the same filename and content type.
    """
    target_bytes = max_size_kb * 1024
    if not upload.is_image or upload.size <= target_bytes:
        return upload

    logger.info(f"Original image size: {round(upload.size / 1024)} KB ({upload.filename})")

    try:
        data = _reencode(upload.data, target_bytes, max_dimension)
    except Exception as e:
        logger.warning(f"Error compressing image {upload.filename}: {e}")
        return upload

    logger.info(f"Compressed image size: {round(len(data) / 1024)} KB ({upload.filename})")

    if len(data) > upload.size:
        logger.info("Compression increased file size, using original")
        return upload

    return PhotoUpload(filename=upload.filename, content_type=upload.content_type, data=data)


def _reencode(data: bytes, target_bytes: int, max_dimension: int) -> bytes:
    with Image.open(io.BytesIO(data)) as source:
        fmt = source.format or "JPEG"
        # Multi-picture JPEGs from phones save fine as plain JPEG
        if fmt == "MPO":
            fmt = "JPEG"
        img = ImageOps.exif_transpose(source)
        img.thumbnail((max_dimension, max_dimension))

    if fmt not in LOSSY_FORMATS:
        return _save(img, fmt, optimize=True)

    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    result = b""
    for quality in QUALITY_STEPS:
        result = _save(img, fmt, quality=quality, optimize=True)
        if len(result) <= target_bytes:
            break
    return result


def _save(img: Image.Image, fmt: str, **options) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **options)
    return buf.getvalue()


def describe_compression(original: PhotoUpload, compressed: PhotoUpload) -> str:
    """Status line shown next to the photo input, sizes in KB."""
    before = round(original.size / 1024)
    if compressed is original:
        return f"Original: {before} KB"
    return f"Original: {before} KB, Compressed: {round(compressed.size / 1024)} KB"
