# medireminder/core/exceptions.py
from fastapi import HTTPException, status


class APIError(HTTPException):
    """HTTPException carrying a stable machine-readable error code.

    Subclasses fix the status code and code string; callers only pass the
    human readable message.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, headers: dict | None = None):
        self.message = message or self.default_message
        super().__init__(status_code=self.status_code, detail=self.message, headers=headers)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class InvalidInput(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_message = "Invalid request data"


class Unauthenticated(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Authentication required"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredential(Unauthenticated):
    code = "invalid_credential"
    default_message = "Invalid or malformed token"


class ExpiredCredential(Unauthenticated):
    code = "expired_credential"
    default_message = "Token expired, please log in again"


class UnknownSubject(Unauthenticated):
    code = "unknown_subject"
    default_message = "Token is valid but the user no longer exists"


class Conflict(APIError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Email already registered"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class UnsupportedMediaType(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "unsupported_media_type"
    default_message = "File type not allowed. Only JPEG, PNG, GIF and WebP images are accepted"


class PayloadTooLarge(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "payload_too_large"
    default_message = "File is too large"


class StorageUnavailable(APIError):
    code = "storage_unavailable"
    default_message = "Storage is temporarily unavailable"
