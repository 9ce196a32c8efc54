"""Error taxonomy shared by services and routes.

Every AppError carries the HTTP status and the stable error code that the
exception handler in server.py renders as {"error": code, "detail": message}.
"""

from enum import Enum


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.default_message()

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace("_", " ").capitalize()


class Unauthorized(AppError):
    status_code = 401
    code = "unauthorized"


class BadRequest(AppError):
    status_code = 400
    code = "bad_request"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class InvalidAssessment(AppError):
    """Lesson assessment cannot be scored (no questions)."""

    status_code = 422
    code = "invalid_assessment"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"

    @classmethod
    def default_message(cls) -> str:
        return "An internal error occurred"


class GenerationErrorKind(str, Enum):
    INVALID_SHAPE = "invalid_shape"
    TIMEOUT = "timeout"
    UPSTREAM_FAILURE = "upstream_failure"


class GenerationError(AppError):
    """The generative-text service did not produce usable content."""

    status_code = 502
    code = "generation_failed"

    def __init__(self, kind: GenerationErrorKind, message: str = ""):
        super().__init__(message or f"Generation failed: {kind.value}")
        self.kind = kind
