from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from src.domain.entities.operation import (
    MAX_PIPELINE_STEPS,
    OperationKind,
    OperationParams,
    ValidatedPipeline,
)
from src.domain.errors import InvalidPipelineError, ValidationError
from src.domain.services.parameter_validator import ParameterValidator


class PipelineValidator:
    """Validates a whole pipeline submission before anything executes.

    Either every step normalizes and the pipeline-level rules hold, in which
    case a ValidatedPipeline is returned, or an error is raised and nothing
    runs. Pipeline-level rules:

    - 1 to ``MAX_PIPELINE_STEPS`` steps
    - at most one ``format`` step
    - a ``format`` step, when present, is the last one
    """

    @classmethod
    def validate(cls, raw: Any) -> ValidatedPipeline:
        pipeline = cls._parse(raw)

        if not isinstance(pipeline, list):
            raise InvalidPipelineError("pipeline must be an array")
        if not pipeline:
            raise InvalidPipelineError("pipeline cannot be empty")
        if len(pipeline) > MAX_PIPELINE_STEPS:
            raise InvalidPipelineError(f"pipeline max length is {MAX_PIPELINE_STEPS} steps")

        steps = tuple(cls._validate_step(idx, step) for idx, step in enumerate(pipeline))

        format_indexes = [idx for idx, step in enumerate(steps) if step.kind is OperationKind.FORMAT]
        if len(format_indexes) > 1:
            raise InvalidPipelineError("only one format operation allowed")
        if format_indexes and format_indexes[0] != len(steps) - 1:
            raise InvalidPipelineError("format must be last step", step=format_indexes[0])

        return ValidatedPipeline(steps=steps)

    @staticmethod
    def _parse(raw: Any) -> Any:
        # multipart submissions carry the pipeline as a JSON string
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            # ValueError also covers over-long integer literals
            except (ValueError, RecursionError):
                raise InvalidPipelineError("pipeline must be valid JSON") from None
        return raw

    @staticmethod
    def _validate_step(idx: int, step: Any) -> OperationParams:
        if not isinstance(step, Mapping):
            raise InvalidPipelineError(f"step[{idx}] must be an object", step=idx)
        op = step.get("op")
        if not isinstance(op, str) or not op:
            raise InvalidPipelineError(f"step[{idx}].op is required", field="op", step=idx)
        try:
            return ParameterValidator.validate(op, step)
        except ValidationError as exc:
            raise exc.at_step(idx) from exc
