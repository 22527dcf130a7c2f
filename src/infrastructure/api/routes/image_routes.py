from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import Response

from src.application.dtos.common_dto import ErrorResponse
from src.application.use_cases.run_pipeline import PipelineRunner
from src.domain.entities.operation import OperationKind, ValidatedPipeline
from src.domain.entities.request import ResponseEnvelope
from src.domain.errors import MissingParamsError
from src.domain.services.parameter_validator import ParameterValidator
from src.domain.services.pipeline_validator import PipelineValidator
from src.infrastructure.api.dependencies import get_pipeline_runner, max_upload_bytes
from src.infrastructure.api.uploads import default_filename, read_image

router = APIRouter(
    prefix="/images",
    tags=["Image Operations"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Missing or invalid parameters"},
        401: {"model": ErrorResponse, "description": "Unauthorized - Missing or invalid bearer token"},
        413: {"model": ErrorResponse, "description": "Payload Too Large - Image exceeds upload limit"},
        415: {"model": ErrorResponse, "description": "Unsupported Media Type - Image format not accepted"},
        422: {"model": ErrorResponse, "description": "Unprocessable - Image could not be transformed"},
    },
)

_IMAGE_RESPONSE: dict[int | str, dict[str, Any]] = {
    200: {"content": {"image/*": {}}, "description": "Transformed image bytes"},
}


def _image_response(result: ResponseEnvelope) -> Response:
    return Response(
        content=result.image,
        media_type=result.content_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


async def _run(
    request: Request,
    runner: PipelineRunner,
    image: UploadFile | None,
    endpoint: str,
    build_pipeline: Callable[[], ValidatedPipeline],
) -> Response:
    data, content_type = await read_image(image, max_upload_bytes())
    pipeline: ValidatedPipeline = build_pipeline()
    result = await runner.run(
        pipeline,
        data,
        endpoint=endpoint,
        authorization=request.headers.get("authorization"),
        content_type=content_type,
        filename=default_filename(content_type),
    )
    return _image_response(result)


def _single(kind: OperationKind, **raw: Any) -> Callable[[], ValidatedPipeline]:
    return lambda: ValidatedPipeline(steps=(ParameterValidator.validate(kind, raw),))


@router.post(
    "/resize",
    summary="Resize Image",
    description="""
    Resize an uploaded image to `width` x `height`.

    **Fit modes** (`fit`, optional, default `cover`):
    - `cover` - crop to fill the box exactly
    - `contain` - letterbox inside the box (black background)
    - `fill` - stretch, ignoring aspect ratio
    - `inside` - keep aspect ratio, fit within the box
    - `outside` - keep aspect ratio, cover the box

    **Authentication required**: Yes (Bearer token)
    """,
    responses=_IMAGE_RESPONSE,
)
async def resize_image(
    request: Request,
    image: UploadFile | None = File(None, description="Image file to transform"),
    width: str | None = Form(None, description="Target width in pixels"),
    height: str | None = Form(None, description="Target height in pixels"),
    fit: str | None = Form(None, description="cover, contain, fill, inside or outside"),
    runner: PipelineRunner = Depends(get_pipeline_runner),
):
    """Resize an image."""
    return await _run(
        request, runner, image, "/images/resize",
        _single(OperationKind.RESIZE, width=width, height=height, fit=fit),
    )


@router.post(
    "/rotate",
    summary="Rotate Image",
    description="""
    Rotate an uploaded image clockwise by `angle` degrees (90, 180 or 270).

    **Authentication required**: Yes (Bearer token)
    """,
    responses=_IMAGE_RESPONSE,
)
async def rotate_image(
    request: Request,
    image: UploadFile | None = File(None, description="Image file to transform"),
    angle: str | None = Form(None, description="90, 180 or 270"),
    runner: PipelineRunner = Depends(get_pipeline_runner),
):
    """Rotate an image."""
    return await _run(request, runner, image, "/images/rotate", _single(OperationKind.ROTATE, angle=angle))


@router.post(
    "/filter",
    summary="Apply Filter",
    description="""
    Apply a `blur`, `sharpen` or `grayscale` filter to an uploaded image.

    **Authentication required**: Yes (Bearer token)
    """,
    responses=_IMAGE_RESPONSE,
)
async def filter_image(
    request: Request,
    image: UploadFile | None = File(None, description="Image file to transform"),
    filter: str | None = Form(None, description="blur, sharpen or grayscale"),
    runner: PipelineRunner = Depends(get_pipeline_runner),
):
    """Apply a filter to an image."""
    return await _run(request, runner, image, "/images/filter", _single(OperationKind.FILTER, filter=filter))


@router.post(
    "/format",
    summary="Convert Format",
    description="""
    Re-encode an uploaded image as `jpeg`, `png` or `webp`.

    The response Content-Type and filename follow the requested format.

    **Authentication required**: Yes (Bearer token)
    """,
    responses=_IMAGE_RESPONSE,
)
async def format_image(
    request: Request,
    image: UploadFile | None = File(None, description="Image file to transform"),
    format: str | None = Form(None, description="jpeg, png or webp"),
    runner: PipelineRunner = Depends(get_pipeline_runner),
):
    """Convert an image to another format."""
    return await _run(request, runner, image, "/images/format", _single(OperationKind.FORMAT, format=format))


@router.post(
    "/process",
    summary="Run Pipeline",
    description="""
    Apply an ordered list of operations to one uploaded image.

    `pipeline` is a JSON array of 1 to 10 steps, each an object with an `op`
    field plus that operation's parameters. The whole pipeline is validated
    before anything runs. At most one `format` step is allowed and it must be
    the last step.

    **Example:**
    ```json
    [
      {"op": "resize", "width": 800, "height": 600, "fit": "inside"},
      {"op": "filter", "filter": "sharpen"},
      {"op": "format", "format": "webp"}
    ]
    ```

    **Authentication required**: Yes (Bearer token)
    """,
    responses=_IMAGE_RESPONSE,
)
async def process_image(
    request: Request,
    image: UploadFile | None = File(None, description="Image file to transform"),
    pipeline: str | None = Form(None, description="JSON array of pipeline steps"),
    runner: PipelineRunner = Depends(get_pipeline_runner),
):
    """Run a multi-step pipeline on an image."""

    def build() -> ValidatedPipeline:
        if pipeline is None or not pipeline.strip():
            raise MissingParamsError("pipeline is required", field="pipeline")
        return PipelineValidator.validate(pipeline)

    return await _run(request, runner, image, "/images/process", build)
