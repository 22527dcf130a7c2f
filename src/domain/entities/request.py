from __future__ import annotations

from dataclasses import dataclass

from src.domain.entities.operation import OperationParams


@dataclass(frozen=True)
class Identity:
    subject_id: str
    email: str | None = None

    @property
    def label(self) -> str:
        return self.email or self.subject_id


@dataclass
class RequestContext:
    """Per-invocation input of a handler chain.

    ``identity`` starts unset; AuthDecorator fills it in so that an outer
    LoggingDecorator can read it back after delegation.
    """

    image: bytes
    params: OperationParams
    endpoint: str
    content_type: str  # declared output metadata for this step
    filename: str
    authorization: str | None = None
    identity: Identity | None = None


@dataclass(frozen=True)
class ResponseEnvelope:
    image: bytes
    content_type: str
    filename: str
