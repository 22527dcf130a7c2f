from __future__ import annotations

from src.application.handlers.auth_decorator import AuthDecorator, AuthService
from src.application.handlers.logging_decorator import LoggingDecorator, RequestLogger
from src.application.handlers.operation_handler import ImageHandler, OperationHandler
from src.domain.services.operation_registry import OperationRegistry


def build_handler_chain(
    registry: OperationRegistry,
    auth_service: AuthService,
    request_logger: RequestLogger,
) -> ImageHandler:
    """Logging(Auth(Operation)).

    Logging is outermost so rejected credentials are logged too, and it runs
    after Auth has set the caller identity on the context.
    """
    handler: ImageHandler = OperationHandler(registry)
    handler = AuthDecorator(handler, auth_service)
    handler = LoggingDecorator(handler, request_logger)
    return handler
