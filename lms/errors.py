from typing import Any


class ApiError(Exception):
    """Base for failures that are rendered as a response envelope.

    ``response_type`` selects the envelope defaults (status code, message,
    data) in :mod:`lms.api.responses`.
    """

    response_type = "error"
    status_code: int | None = None

    def __init__(self, message: str = "", data: Any = None, headers: dict[str, str] | None = None):
        super().__init__(message or self.response_type)
        self.message = message
        self.data = data
        self.headers = headers


class ValidationFailed(ApiError):
    response_type = "validation_error"

    def __init__(self, message: str = "Validation failed", data: Any = None):
        super().__init__(message, data)

    @classmethod
    def for_field(cls, field: str, error: str) -> "ValidationFailed":
        return cls(message=error, data={field: [error]})


class Unauthenticated(ApiError):
    response_type = "unauthenticated"


class InvalidOrExpiredOtp(ApiError):
    response_type = "validation_error"
    status_code = 400

    def __init__(self):
        super().__init__("Invalid or expired OTP", {"otp": ["Invalid or expired OTP."]})


class RateLimited(ApiError):
    response_type = "too_many_requests"


class NotFound(ApiError):
    response_type = "not_found"


class Forbidden(ApiError):
    response_type = "unauthorized"


class InactiveUser(ApiError):
    response_type = "inactive_user"
