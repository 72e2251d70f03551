from lms.schemas.envelope import Envelope
from lms.schemas.users import (
    ChangePasswordRequest,
    ProfileUpdateRequest,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)

__all__ = [
    "Envelope",
    "ChangePasswordRequest",
    "ProfileUpdateRequest",
    "UserCreateRequest",
    "UserResponse",
    "UserUpdateRequest",
]
