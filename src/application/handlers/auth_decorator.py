from __future__ import annotations

from typing import Protocol

from starlette.concurrency import run_in_threadpool

from src.application.handlers.operation_handler import ImageHandler
from src.domain.entities.request import Identity, RequestContext, ResponseEnvelope
from src.domain.errors import MissingTokenError


class AuthService(Protocol):
    def verify_token(self, token: str) -> Identity: ...

    def register(self, email: str, password: str) -> None: ...

    def login(self, email: str, password: str) -> str: ...


def get_bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        return None
    return parts[1]


class AuthDecorator:
    """Requires a valid bearer token before delegating to ``inner``."""

    def __init__(self, inner: ImageHandler, auth_service: AuthService) -> None:
        self.inner = inner
        self.auth_service = auth_service

    async def handle(self, ctx: RequestContext) -> ResponseEnvelope:
        token = get_bearer_token(ctx.authorization)
        if token is None:
            raise MissingTokenError("Missing Authorization Bearer token")

        # raises InvalidTokenError; the token check may hit the network
        ctx.identity = await run_in_threadpool(self.auth_service.verify_token, token)

        return await self.inner.handle(ctx)
