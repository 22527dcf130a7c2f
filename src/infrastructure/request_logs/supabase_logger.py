from __future__ import annotations

import os
from collections import deque

from starlette.concurrency import run_in_threadpool
from supabase import Client

from src.domain.entities.log_entry import LogEntry

MAX_MEMORY_ENTRIES = 1000


class SupabaseRequestLogger:
    """Stores request log entries as rows of a Supabase table.

    Without a client the entries are kept in memory (``entries``), which is
    what local mode and the tests use. Only the newest MAX_MEMORY_ENTRIES are
    kept.
    """

    def __init__(self, client: Client | None, table: str | None = None) -> None:
        self.client = client
        self.table = table or os.getenv("REQUEST_LOG_TABLE", "request_logs")
        self.entries: deque[LogEntry] = deque(maxlen=MAX_MEMORY_ENTRIES)

    async def open(self) -> None:
        return None

    async def log(self, entry: LogEntry) -> None:
        if self.client is None:
            self.entries.append(entry)
            return
        await run_in_threadpool(self._insert, entry)  # pragma: no cover - network

    async def close(self) -> None:
        return None

    def _insert(self, entry: LogEntry) -> None:  # pragma: no cover - network
        try:
            self.client.table(self.table).insert(entry.to_dict()).execute()
        except Exception as exc:
            raise RuntimeError(f"DB insert request log failed: {exc}") from exc
