from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from src.domain.entities.operation import (
    ALLOWED_ANGLES,
    MAX_DIMENSION,
    FilterName,
    FilterParams,
    FitMode,
    FormatParams,
    OperationKind,
    OperationParams,
    OutputFormat,
    ResizeParams,
    RotateParams,
)
from src.domain.errors import InvalidParamsError, MissingParamsError, UnknownOperationError


class ParameterValidator:
    """Turns loosely typed request parameters into a typed OperationParams.

    Form fields arrive as strings and JSON pipeline steps as numbers or strings;
    both are accepted. Pure: no I/O, no side effects.
    """

    @classmethod
    def validate(cls, kind: OperationKind | str, raw: Mapping[str, Any]) -> OperationParams:
        op = cls.parse_kind(kind)
        if op is OperationKind.RESIZE:
            return cls._resize(raw)
        if op is OperationKind.ROTATE:
            return cls._rotate(raw)
        if op is OperationKind.FILTER:
            return cls._filter(raw)
        return cls._format(raw)

    @staticmethod
    def parse_kind(kind: OperationKind | str) -> OperationKind:
        if isinstance(kind, OperationKind):
            return kind
        try:
            return OperationKind(kind)
        except ValueError:
            raise UnknownOperationError(f"unknown op '{kind}'", field="op") from None

    # --------- per operation ---------
    @classmethod
    def _resize(cls, raw: Mapping[str, Any]) -> ResizeParams:
        width = cls._positive_number(raw, "width", "resize")
        height = cls._positive_number(raw, "height", "resize")

        fit: FitMode | None = None
        raw_fit = raw.get("fit")
        if not _is_blank(raw_fit):
            try:
                fit = FitMode(str(raw_fit).strip().lower())
            except ValueError:
                allowed = ", ".join(m.value for m in FitMode)
                raise InvalidParamsError(f"resize.fit must be one of: {allowed}", field="fit") from None
        return ResizeParams(width=width, height=height, fit=fit)

    @classmethod
    def _rotate(cls, raw: Mapping[str, Any]) -> RotateParams:
        value = cls._required(raw, "angle", "rotate")
        angle = _to_number(value)
        if angle is None or angle not in ALLOWED_ANGLES:
            raise InvalidParamsError("rotate.angle must be 90, 180 or 270", field="angle")
        return RotateParams(angle=int(angle))

    @classmethod
    def _filter(cls, raw: Mapping[str, Any]) -> FilterParams:
        value = str(cls._required(raw, "filter", "filter")).strip().lower()
        try:
            return FilterParams(filter=FilterName(value))
        except ValueError:
            allowed = ", ".join(f.value for f in FilterName)
            raise InvalidParamsError(f"filter.filter must be one of: {allowed}", field="filter") from None

    @classmethod
    def _format(cls, raw: Mapping[str, Any]) -> FormatParams:
        value = str(cls._required(raw, "format", "format")).strip().lower()
        try:
            return FormatParams(format=OutputFormat(value))
        except ValueError:
            raise InvalidParamsError("format.format must be jpeg, png or webp", field="format") from None

    # --------- helpers ---------
    @staticmethod
    def _required(raw: Mapping[str, Any], name: str, op: str) -> Any:
        value = raw.get(name)
        if _is_blank(value):
            raise MissingParamsError(f"{op}.{name} is required", field=name)
        return value

    @classmethod
    def _positive_number(cls, raw: Mapping[str, Any], name: str, op: str) -> float:
        number = _to_number(cls._required(raw, name, op))
        if number is None or number <= 0:
            raise InvalidParamsError(f"{op}.{name} must be a positive number", field=name)
        if number > MAX_DIMENSION:
            raise InvalidParamsError(f"{op}.{name} must be at most {MAX_DIMENSION}", field=name)
        return number


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_number(value: Any) -> float | None:
    """Finite float from an int, float or numeric string; None otherwise."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        # huge ints overflow float conversion
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None
