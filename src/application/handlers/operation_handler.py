from __future__ import annotations

from typing import Protocol

from src.domain.entities.request import RequestContext, ResponseEnvelope
from src.domain.services.operation_registry import OperationRegistry


class ImageHandler(Protocol):
    async def handle(self, ctx: RequestContext) -> ResponseEnvelope: ...


class OperationHandler:
    """Innermost handler: runs the registered operation for ``ctx.params``.

    Errors raised by the operation propagate unchanged.
    """

    def __init__(self, registry: OperationRegistry) -> None:
        self.registry = registry

    async def handle(self, ctx: RequestContext) -> ResponseEnvelope:
        operation = self.registry.resolve(ctx.params.kind)
        out = await operation.execute(ctx.image, ctx.params)
        return ResponseEnvelope(image=out, content_type=ctx.content_type, filename=ctx.filename)
