from __future__ import annotations

from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool

from src.application.dtos.auth_dto import CredentialsRequest, LoginResponse, RegisterResponse
from src.application.dtos.common_dto import ErrorResponse
from src.application.handlers.auth_decorator import AuthService
from src.domain.errors import MissingFieldsError
from src.infrastructure.api.dependencies import get_auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Missing fields or email taken"},
    },
)


def _credentials(body: CredentialsRequest | None) -> tuple[str, str]:
    body = body or CredentialsRequest()
    if not body.email or not body.email.strip() or not body.password:
        raise MissingFieldsError("email and password are required")
    return body.email, body.password


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Account",
    description="""
    Create an account with an email and password.

    **Authentication required**: No
    """,
)
async def register(body: CredentialsRequest | None = None, auth: AuthService = Depends(get_auth_service)):
    """Create a new account."""
    email, password = _credentials(body)
    await run_in_threadpool(auth.register, email, password)
    return RegisterResponse(success=True)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log In",
    description="""
    Exchange an email and password for a bearer token.

    Use the token as `Authorization: Bearer <token>` on the image endpoints.

    **Authentication required**: No
    """,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(body: CredentialsRequest | None = None, auth: AuthService = Depends(get_auth_service)):
    """Log in and receive a bearer token."""
    email, password = _credentials(body)
    token = await run_in_threadpool(auth.login, email, password)
    return LoginResponse(token=token)
