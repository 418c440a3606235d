from typing import Optional


class ServiceError(Exception):
    """Failure raised by a service and rendered once as a JSON response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_payload(self):
        payload = {"message": self.message}
        if self.detail:
            payload["error"] = self.detail
        return payload


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Please provide all required fields"


class ConflictError(ServiceError):
    status_code = 400
    default_message = "Email already exists"


class AuthError(ServiceError):
    status_code = 401
    default_message = "Invalid email or password"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class StoreError(ServiceError):
    status_code = 500


class ReadinessError(ServiceError):
    status_code = 500
    default_message = "Database not initialized. Please try again later."


class UploadError(ServiceError):
    status_code = 502
    default_message = "Image upload failed"
