from __future__ import annotations

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Email and password, used by both register and login.

    Fields are optional at the schema level so that an incomplete body is
    reported as MISSING_FIELDS rather than a generic validation error.
    """
    email: str | None = Field(None, description="Account email", examples=["user@example.com"])
    password: str | None = Field(None, description="Account password")


class RegisterResponse(BaseModel):
    success: bool = Field(True, description="Indicates the account was created")


class LoginResponse(BaseModel):
    token: str = Field(..., description="Bearer token for the Authorization header")
