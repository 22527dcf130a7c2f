from __future__ import annotations

from dataclasses import dataclass

from src.application.handlers.operation_handler import ImageHandler
from src.domain.entities.operation import FormatParams, OperationParams, ValidatedPipeline
from src.domain.entities.request import RequestContext, ResponseEnvelope


@dataclass
class PipelineRunner:
    handler: ImageHandler

    async def run(
        self,
        pipeline: ValidatedPipeline,
        image: bytes,
        *,
        endpoint: str,
        authorization: str | None,
        content_type: str,
        filename: str,
    ) -> ResponseEnvelope:
        """
        Run every step of a validated pipeline through the handler chain.

        Steps run strictly in order; each step's output bytes are the next
        step's input. Content type and filename carry forward and are replaced
        only by a step that defines its own output (``format``). The first
        failing step aborts the run and its error propagates; no partial
        result is returned.
        """
        result: ResponseEnvelope | None = None
        for step in pipeline:
            content_type, filename = self._declared_output(step, content_type, filename)
            ctx = RequestContext(
                image=image,
                params=step,
                endpoint=endpoint,
                content_type=content_type,
                filename=filename,
                authorization=authorization,
            )
            result = await self.handler.handle(ctx)
            image, content_type, filename = result.image, result.content_type, result.filename

        if result is None:
            raise ValueError("pipeline has no steps")
        return result

    @staticmethod
    def _declared_output(step: OperationParams, content_type: str, filename: str) -> tuple[str, str]:
        if isinstance(step, FormatParams):
            return step.content_type, step.filename
        return content_type, filename
