from __future__ import annotations

from io import BytesIO

import numpy as np
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from src.domain.entities.operation import (
    FilterName,
    FilterParams,
    FitMode,
    FormatParams,
    OutputFormat,
    ResizeParams,
    RotateParams,
)
from src.domain.errors import OperationError

_RESAMPLE = Image.Resampling.LANCZOS

# Pillow rotates counterclockwise; the API angle is clockwise.
_CLOCKWISE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

_SAVE_FORMATS = {
    OutputFormat.JPEG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.WEBP: "WEBP",
}


class ProcessingService:
    """Pillow/NumPy image transformations on encoded byte buffers.

    Every method decodes the input, transforms it and encodes the result.
    Non-format operations keep the source encoding (a PNG stays a PNG);
    ``convert_format`` is the only one that changes it.
    """

    # Resize to width x height using the sharp-style fit strategies
    @staticmethod
    def resize(data: bytes, width: float, height: float, fit: FitMode = FitMode.COVER) -> bytes:
        img, source_format = ProcessingService._decode(data)
        size = (_to_pixels(width), _to_pixels(height))
        if fit is FitMode.OUTSIDE:
            scale = max(size[0] / img.width, size[1] / img.height)
            size = (_to_pixels(img.width * scale), _to_pixels(img.height * scale))
        _check_pixels(size)
        img = _flatten_palette(img)

        try:
            if fit in (FitMode.FILL, FitMode.OUTSIDE):
                out = img.resize(size, _RESAMPLE)
            elif fit is FitMode.CONTAIN:
                out = ImageOps.pad(img, size, _RESAMPLE, color=_black(img))
            elif fit is FitMode.INSIDE:
                out = ImageOps.contain(img, size, _RESAMPLE)
            else:
                out = ImageOps.fit(img, size, _RESAMPLE)
        except MemoryError as exc:
            raise OperationError(f"Not enough memory to resize to {size[0]}x{size[1]}") from exc
        return ProcessingService._encode(out, source_format)

    # Rotate clockwise by a right angle; 90 and 270 swap width and height
    @staticmethod
    def rotate(data: bytes, angle: int) -> bytes:
        transpose = _CLOCKWISE.get(int(angle))
        if transpose is None:
            raise OperationError(f"rotation by {angle} degrees is not supported")
        img, source_format = ProcessingService._decode(data)
        return ProcessingService._encode(img.transpose(transpose), source_format)

    @staticmethod
    def apply_filter(data: bytes, name: FilterName) -> bytes:
        img, source_format = ProcessingService._decode(data)
        img = _flatten_palette(img)
        if name is FilterName.GRAYSCALE:
            out = ProcessingService.grayscale_luminosity(img)
        elif name is FilterName.SHARPEN:
            out = img.filter(ImageFilter.SHARPEN)
        else:
            out = img.filter(ImageFilter.BoxBlur(1))
        return ProcessingService._encode(out, source_format)

    @staticmethod
    def convert_format(data: bytes, fmt: OutputFormat) -> bytes:
        img, _ = ProcessingService._decode(data)
        return ProcessingService._encode(img, _SAVE_FORMATS[fmt])

    # MIME type of the encoded image from its header, or None if unrecognised
    @staticmethod
    def detect_content_type(data: bytes) -> str | None:
        try:
            with Image.open(BytesIO(data)) as img:
                fmt = img.format
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
            return None
        return Image.MIME.get(fmt) if fmt else None

    # Grayscale (Luminosity): 0.299*R + 0.587*G + 0.114*B, alpha kept
    @staticmethod
    def grayscale_luminosity(img: Image.Image) -> Image.Image:
        rgb = np.asarray(img.convert("RGB"), dtype=np.float32)
        weights = np.array([0.299, 0.587, 0.114], dtype=np.float32)
        gray = np.clip(np.rint(rgb @ weights), 0, 255).astype(np.uint8)
        out = Image.fromarray(gray)
        if "A" in img.getbands():
            out.putalpha(img.getchannel("A"))
        return out

    # --------- codec helpers ---------
    @staticmethod
    def _decode(data: bytes) -> tuple[Image.Image, str]:
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise OperationError(f"Unable to decode image: {exc}") from exc
        return img, img.format or "PNG"

    @staticmethod
    def _encode(img: Image.Image, fmt: str) -> bytes:
        if fmt == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
            img = img.convert("RGB")
        buf = BytesIO()
        try:
            img.save(buf, format=fmt)
        except (OSError, ValueError, KeyError) as exc:
            raise OperationError(f"Unable to encode image as {fmt}: {exc}") from exc
        return buf.getvalue()


def _to_pixels(value: float) -> int:
    return max(1, int(round(value)))


def _check_pixels(size: tuple[int, int]) -> None:
    limit = Image.MAX_IMAGE_PIXELS
    if limit is not None and size[0] * size[1] > limit:
        raise OperationError(f"Target size {size[0]}x{size[1]} exceeds the {limit} pixel limit")


def _flatten_palette(img: Image.Image) -> Image.Image:
    # palette and bilevel images resample poorly; work in RGB(A)
    if img.mode in ("P", "1"):
        return img.convert("RGBA" if "transparency" in img.info else "RGB")
    return img


def _black(img: Image.Image) -> int | tuple[int, ...]:
    color = tuple(255 if band == "A" else 0 for band in img.getbands())
    return color[0] if len(color) == 1 else color


class ResizeOperation:
    async def execute(self, image: bytes, params: ResizeParams) -> bytes:
        return await run_in_threadpool(
            ProcessingService.resize, image, params.width, params.height, params.effective_fit
        )


class RotateOperation:
    async def execute(self, image: bytes, params: RotateParams) -> bytes:
        return await run_in_threadpool(ProcessingService.rotate, image, params.angle)


class FilterOperation:
    async def execute(self, image: bytes, params: FilterParams) -> bytes:
        return await run_in_threadpool(ProcessingService.apply_filter, image, params.filter)


class FormatOperation:
    async def execute(self, image: bytes, params: FormatParams) -> bytes:
        return await run_in_threadpool(ProcessingService.convert_format, image, params.format)
