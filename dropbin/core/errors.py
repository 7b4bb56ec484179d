"""
Domain errors raised by the text store and identifier allocator.

Each error carries the HTTP status it maps to; main.py renders them as
``{"detail": ...}`` bodies, the same shape FastAPI uses for HTTPException.
"""
from fastapi import status


class TextError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"

    def __init__(self, detail: str = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidInput(TextError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"


class Unauthorized(TextError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Text is locked, a valid password is required"


class NotFound(TextError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Text not found"


class Conflict(TextError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Text id already in use"


class ContentTooLarge(TextError):
    status_code = 413
    detail = "Content too large"


class ResourceExhausted(TextError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Could not allocate a free text id"


class Unavailable(TextError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Service unavailable"


class UpstreamTimeout(TextError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    detail = "Upstream request timed out"
