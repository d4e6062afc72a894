"""
Domain errors raised by the stores and the HTTP layer.

Each error carries the HTTP status it maps to; ``main.py`` installs one
handler that turns any of them into ``{"detail": <message>}``, the same body
FastAPI uses for ``HTTPException``. Every conflict is a 409.
"""
from fastapi import status


class SocialAPIError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(SocialAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class AuthError(SocialAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class Forbidden(SocialAPIError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Unauthorized"


class NotFound(SocialAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Conflict(SocialAPIError):
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


class EmailTaken(Conflict):
    message = "Email already registered"


class DuplicateEdge(Conflict):
    message = "Already following this user"


class AlreadyLiked(Conflict):
    message = "Already liked this post"
