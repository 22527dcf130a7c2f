"""Error taxonomy surfaced at the HTTP boundary.

Every error carries an HTTP status, a stable machine-readable code and a human
message. Handlers and decorators raise these and never translate one kind into
another; the API layer renders them into the JSON error envelope.
"""
from __future__ import annotations


class ApiError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, field: str | None = None, step: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.step = step

    def at_step(self, index: int) -> ApiError:
        """Copy of this error tagged with the pipeline step that produced it."""
        return type(self)(f"{self.message} (step[{index}])", field=self.field, step=index)


# Client errors (4xx)
class ValidationError(ApiError):
    status_code = 400
    code = "INVALID_PARAMS"


class InvalidParamsError(ValidationError):
    code = "INVALID_PARAMS"


class MissingParamsError(ValidationError):
    code = "MISSING_PARAMS"


class MissingFieldsError(ValidationError):
    code = "MISSING_FIELDS"


class MissingImageError(ValidationError):
    code = "MISSING_IMAGE"


class InvalidPipelineError(ValidationError):
    code = "INVALID_PIPELINE"


class UnknownOperationError(ValidationError):
    code = "UNKNOWN_OPERATION"


class EmailExistsError(ValidationError):
    code = "EMAIL_EXISTS"


class UnsupportedMediaTypeError(ApiError):
    status_code = 415
    code = "UNSUPPORTED_MEDIA_TYPE"


class PayloadTooLargeError(ApiError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"


# Authentication (401)
class AuthenticationError(ApiError):
    status_code = 401
    code = "INVALID_TOKEN"


class MissingTokenError(AuthenticationError):
    code = "MISSING_TOKEN"


class InvalidTokenError(AuthenticationError):
    code = "INVALID_TOKEN"


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"


# Transformation engine failures
class OperationError(ApiError):
    status_code = 422
    code = "OPERATION_FAILED"
