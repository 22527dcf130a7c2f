import asyncio
import io

import numpy as np
import pytest
from PIL import Image

from src.domain.entities.operation import (
    FilterName,
    FitMode,
    FormatParams,
    OutputFormat,
    ResizeParams,
    RotateParams,
)
from src.domain.errors import OperationError
from src.domain.services.processing_service import (
    FormatOperation,
    ProcessingService as PS,
    ResizeOperation,
    RotateOperation,
)
from tests.fakes import decode_size, encode_image


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


@pytest.mark.parametrize(
    "fit,expected",
    [
        (FitMode.COVER, (100, 100)),
        (FitMode.CONTAIN, (100, 100)),
        (FitMode.FILL, (100, 100)),
        (FitMode.INSIDE, (100, 50)),
        (FitMode.OUTSIDE, (200, 100)),
    ],
)
def test_resize_fit_modes(fit, expected):
    src = encode_image(200, 100)
    assert decode_size(PS.resize(src, 100, 100, fit)) == expected


def test_resize_rounds_fractional_sizes():
    assert decode_size(PS.resize(encode_image(10, 10), 20.4, 5.6, FitMode.FILL)) == (20, 6)


def test_contain_letterboxes_with_black():
    src = encode_image(200, 100, color=(255, 255, 255))
    out = np.asarray(_open(PS.resize(src, 100, 100, FitMode.CONTAIN)).convert("RGB"))
    assert out[0, 50].tolist() == [0, 0, 0]
    assert out[50, 50].tolist() == [255, 255, 255]


def test_rotate_swaps_dimensions():
    src = encode_image(100, 50)
    assert decode_size(PS.rotate(src, 90)) == (50, 100)
    assert decode_size(PS.rotate(src, 180)) == (100, 50)
    assert decode_size(PS.rotate(src, 270)) == (50, 100)


def test_rotate_is_clockwise():
    arr = np.zeros((2, 3, 3), dtype=np.uint8)
    arr[0, 0] = (255, 0, 0)  # red top-left
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    out = np.asarray(_open(PS.rotate(buf.getvalue(), 90)).convert("RGB"))
    # clockwise: top-left moves to top-right
    assert out.shape[:2] == (3, 2)
    assert out[0, 1].tolist() == [255, 0, 0]


def test_non_format_operations_keep_source_encoding():
    jpeg = encode_image(8, 8, fmt="JPEG")
    assert _open(PS.rotate(jpeg, 90)).format == "JPEG"
    assert _open(PS.apply_filter(encode_image(8, 8), FilterName.BLUR)).format == "PNG"


def test_grayscale_uses_luminosity_weights():
    out = _open(PS.apply_filter(encode_image(4, 4, color=(100, 200, 50)), FilterName.GRAYSCALE))
    assert out.mode == "L"
    expected = round(0.299 * 100 + 0.587 * 200 + 0.114 * 50)
    assert abs(out.getpixel((0, 0)) - expected) <= 1


def test_sharpen_and_blur_keep_size():
    src = encode_image(16, 9)
    assert decode_size(PS.apply_filter(src, FilterName.SHARPEN)) == (16, 9)
    assert decode_size(PS.apply_filter(src, FilterName.BLUR)) == (16, 9)


@pytest.mark.parametrize("fmt,pil_format", [(OutputFormat.JPEG, "JPEG"), (OutputFormat.PNG, "PNG"), (OutputFormat.WEBP, "WEBP")])
def test_convert_format(fmt, pil_format):
    out = _open(PS.convert_format(encode_image(8, 8), fmt))
    assert out.format == pil_format


def test_jpeg_conversion_drops_alpha():
    rgba = Image.new("RGBA", (4, 4), (10, 20, 30, 128))
    buf = io.BytesIO()
    rgba.save(buf, format="PNG")
    out = _open(PS.convert_format(buf.getvalue(), OutputFormat.JPEG))
    assert out.mode == "RGB"


def test_undecodable_input_raises_operation_error():
    with pytest.raises(OperationError) as exc_info:
        PS.rotate(b"definitely not an image", 90)
    assert exc_info.value.code == "OPERATION_FAILED"


def test_capabilities_run_off_the_event_loop():
    src = encode_image(100, 50)
    rotated = asyncio.run(RotateOperation().execute(src, RotateParams(angle=90)))
    assert decode_size(rotated) == (50, 100)
    resized = asyncio.run(ResizeOperation().execute(src, ResizeParams(width=10, height=10)))
    assert decode_size(resized) == (10, 10)
    webp = asyncio.run(FormatOperation().execute(src, FormatParams(format=OutputFormat.WEBP)))
    assert _open(webp).format == "WEBP"


def test_resize_is_deterministic():
    src = encode_image(120, 80)
    first = PS.resize(src, 100, 100)
    second = PS.resize(src, 100, 100)
    assert decode_size(first) == decode_size(second) == (100, 100)
    assert first == second


def test_resize_rejects_targets_over_pixel_limit():
    with pytest.raises(OperationError, match="pixel limit"):
        PS.resize(encode_image(4, 4), 20000, 20000, FitMode.FILL)


def test_outside_fit_checks_the_scaled_size():
    # 1x100 covering 8000x8000 would become 8000x800000
    with pytest.raises(OperationError, match="pixel limit"):
        PS.resize(encode_image(1, 100), 8000, 8000, FitMode.OUTSIDE)


def test_resize_out_of_memory_is_an_operation_error(monkeypatch):
    def exhausted(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(Image.Image, "resize", exhausted)
    with pytest.raises(OperationError, match="memory"):
        PS.resize(encode_image(4, 4), 8, 8, FitMode.FILL)


def test_detect_content_type():
    assert PS.detect_content_type(encode_image(fmt="PNG")) == "image/png"
    assert PS.detect_content_type(encode_image(fmt="JPEG")) == "image/jpeg"
    assert PS.detect_content_type(b"not an image") is None
