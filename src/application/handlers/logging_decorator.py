from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Protocol

from src.application.handlers.operation_handler import ImageHandler
from src.domain.entities.log_entry import LogEntry
from src.domain.entities.request import RequestContext, ResponseEnvelope
from src.infrastructure.logging_config import get_logger

_log = get_logger("handlers.logging")


class RequestLogger(Protocol):
    async def open(self) -> None: ...

    async def log(self, entry: LogEntry) -> None: ...

    async def close(self) -> None: ...


class LoggingDecorator:
    """Writes one LogEntry per invocation of ``inner``, success or failure.

    Failures are re-raised unchanged after the entry is written. A failing
    logger is reported on the application log and otherwise ignored, so it can
    never replace the request's own outcome.
    """

    def __init__(self, inner: ImageHandler, request_logger: RequestLogger) -> None:
        self.inner = inner
        self.request_logger = request_logger

    async def handle(self, ctx: RequestContext) -> ResponseEnvelope:
        timestamp = datetime.now(UTC)
        start = time.perf_counter()

        try:
            result = await self.inner.handle(ctx)
        except Exception as exc:
            await self._write(
                LogEntry(
                    timestamp=timestamp,
                    level="error",
                    endpoint=ctx.endpoint,
                    params=ctx.params.to_dict(),
                    duration_ms=(time.perf_counter() - start) * 1000.0,
                    result="error",
                    user=ctx.identity.label if ctx.identity else None,
                    message=str(exc),
                )
            )
            raise

        await self._write(
            LogEntry(
                timestamp=timestamp,
                level="info",
                endpoint=ctx.endpoint,
                params=ctx.params.to_dict(),
                duration_ms=(time.perf_counter() - start) * 1000.0,
                result="success",
                user=ctx.identity.label if ctx.identity else None,
            )
        )
        return result

    async def _write(self, entry: LogEntry) -> None:
        try:
            await self.request_logger.log(entry)
        except Exception:
            _log.exception("Failed to write request log entry for %s", entry.endpoint)
