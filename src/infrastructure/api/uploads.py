from __future__ import annotations

from fastapi import UploadFile

from src.domain.entities.operation import DEFAULT_FILENAME_STEM
from src.domain.errors import MissingImageError, PayloadTooLargeError, UnsupportedMediaTypeError
from src.domain.services.processing_service import ProcessingService

ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/avif": "avif",
    "image/tiff": "tiff",
}


def default_filename(content_type: str) -> str:
    return f"{DEFAULT_FILENAME_STEM}.{ALLOWED_MIME_TYPES.get(content_type, 'jpg')}"


async def read_image(image: UploadFile | None, max_bytes: int) -> tuple[bytes, str]:
    """Read the uploaded image part; returns its bytes and MIME type.

    The returned type is the one sniffed from the bytes when it is an accepted
    type, so the response label matches what the engine re-encodes.
    """
    if image is None or not image.filename:
        raise MissingImageError("image file is required", field="image")

    content_type = (image.content_type or "").lower()
    if content_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedMediaTypeError("Unsupported image format", field="image")

    # read one byte past the limit to detect oversize uploads without buffering them
    data = await image.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise PayloadTooLargeError(f"image exceeds the {max_bytes} byte limit", field="image")
    if not data:
        raise MissingImageError("image file is empty", field="image")

    sniffed = ProcessingService.detect_content_type(data)
    if sniffed in ALLOWED_MIME_TYPES:
        content_type = sniffed
    return data, content_type
