from __future__ import annotations

from typing import Any, Protocol

from src.domain.entities.operation import OperationKind
from src.domain.errors import UnknownOperationError


class OperationCapability(Protocol):
    async def execute(self, image: bytes, params: Any) -> bytes: ...


class OperationRegistry:
    """Maps an operation kind to the capability that executes it.

    Populated once at startup and only read afterwards, so a single instance is
    shared by every request.
    """

    def __init__(self) -> None:
        self._ops: dict[OperationKind, OperationCapability] = {}

    def register(self, kind: OperationKind, capability: OperationCapability) -> None:
        self._ops[OperationKind(kind)] = capability

    def resolve(self, kind: OperationKind) -> OperationCapability:
        op = self._ops.get(kind)
        if op is None:
            raise UnknownOperationError(f"Unknown operation: {getattr(kind, 'value', kind)}")
        return op

    def kinds(self) -> list[OperationKind]:
        return list(self._ops)

    @classmethod
    def default(cls) -> OperationRegistry:
        # local import keeps the registry free of Pillow for callers that inject their own
        from src.domain.services.processing_service import (
            FilterOperation,
            FormatOperation,
            ResizeOperation,
            RotateOperation,
        )

        registry = cls()
        registry.register(OperationKind.RESIZE, ResizeOperation())
        registry.register(OperationKind.ROTATE, RotateOperation())
        registry.register(OperationKind.FILTER, FilterOperation())
        registry.register(OperationKind.FORMAT, FormatOperation())
        return registry
