from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import TextIO

from starlette.concurrency import run_in_threadpool

from src.domain.entities.log_entry import LogEntry


class FileRequestLogger:
    """Appends request log entries to a JSON-lines file.

    The file is opened by ``open()`` at application startup and closed by
    ``close()`` at shutdown. Each entry is flushed as soon as it is written.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or os.getenv("REQUEST_LOG_PATH", "logs/app.log"))
        self._fh: TextIO | None = None
        self._lock = threading.Lock()

    async def open(self) -> None:
        await run_in_threadpool(self._open)

    async def log(self, entry: LogEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        await run_in_threadpool(self._append, line)

    async def close(self) -> None:
        await run_in_threadpool(self._close)

    def _open(self) -> None:
        with self._lock:
            if self._fh is not None:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")

    def _append(self, line: str) -> None:
        with self._lock:
            if self._fh is None:
                raise RuntimeError(f"Request log {self.path} is not open")
            self._fh.write(line + "\n")
            self._fh.flush()

    def _close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
