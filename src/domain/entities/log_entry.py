from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: Literal["info", "error"]
    endpoint: str
    duration_ms: float
    result: Literal["success", "error"]
    params: dict[str, Any] = field(default_factory=dict)
    user: str | None = None  # email or subject id of the caller
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        # unset optional fields are omitted, never written as null
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "endpoint": self.endpoint,
            "params": self.params,
            "duration": round(self.duration_ms, 3),
            "result": self.result,
        }
        if self.user:
            data["user"] = self.user
        if self.message is not None:
            data["message"] = self.message
        return data
