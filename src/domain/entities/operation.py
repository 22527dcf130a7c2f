from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Iterator, Union


class OperationKind(str, Enum):
    RESIZE = "resize"
    ROTATE = "rotate"
    FILTER = "filter"
    FORMAT = "format"


class FitMode(str, Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"
    OUTSIDE = "outside"


class FilterName(str, Enum):
    BLUR = "blur"
    SHARPEN = "sharpen"
    GRAYSCALE = "grayscale"


class OutputFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.JPEG else self.value


ALLOWED_ANGLES = (90, 180, 270)
MAX_PIPELINE_STEPS = 10
MAX_DIMENSION = 8192  # per side, in pixels
DEFAULT_FILENAME_STEM = "processed-image"


@dataclass(frozen=True)
class ResizeParams:
    kind: ClassVar[OperationKind] = OperationKind.RESIZE

    width: float
    height: float
    fit: FitMode | None = None  # unset means cover at execution time

    @property
    def effective_fit(self) -> FitMode:
        return self.fit or FitMode.COVER

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"width": self.width, "height": self.height}
        if self.fit is not None:
            data["fit"] = self.fit.value
        return data


@dataclass(frozen=True)
class RotateParams:
    kind: ClassVar[OperationKind] = OperationKind.ROTATE

    angle: int

    def to_dict(self) -> dict[str, Any]:
        return {"angle": self.angle}


@dataclass(frozen=True)
class FilterParams:
    kind: ClassVar[OperationKind] = OperationKind.FILTER

    filter: FilterName

    def to_dict(self) -> dict[str, Any]:
        return {"filter": self.filter.value}


@dataclass(frozen=True)
class FormatParams:
    kind: ClassVar[OperationKind] = OperationKind.FORMAT

    format: OutputFormat

    @property
    def content_type(self) -> str:
        return self.format.content_type

    @property
    def filename(self) -> str:
        return f"{DEFAULT_FILENAME_STEM}.{self.format.extension}"

    def to_dict(self) -> dict[str, Any]:
        return {"format": self.format.value}


OperationParams = Union[ResizeParams, RotateParams, FilterParams, FormatParams]


@dataclass(frozen=True)
class ValidatedPipeline:
    """Ordered, fully validated pipeline steps. Built only by PipelineValidator."""

    steps: tuple[OperationParams, ...]

    def __iter__(self) -> Iterator[OperationParams]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def to_list(self) -> list[dict[str, Any]]:
        return [{"op": step.kind.value, **step.to_dict()} for step in self.steps]
