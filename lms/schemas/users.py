from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from lms.models.user import STATUS_ACTIVE

Role = Literal["admin", "user", "manager"]
Status = Literal[0, 1]


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    mobile_no: str | None = None
    fcm_id: str | None = None
    role: str
    image_url: str | None = None
    address: str | None = None
    dob: date | None = None
    gender: str | None = None
    school_name: str | None = None
    roll_no: str | None = None
    status: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    mobile_no: str | None = Field(default=None, max_length=20)
    address: str | None = None
    dob: date | None = None
    gender: str | None = None
    school_name: str | None = None
    roll_no: str | None = None
    image_url: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v

    @model_validator(mode="after")
    def validate_change(self) -> "ChangePasswordRequest":
        if self.new_password == self.current_password:
            raise ValueError("New password must be different from the current password")
        if self.new_password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str
    role: Role
    status: Status = STATUS_ACTIVE
    mobile_no: str | None = Field(default=None, max_length=20)
    fcm_id: str | None = None
    image_url: str | None = None
    address: str | None = None
    dob: date | None = None
    gender: str | None = None
    school_name: str | None = None
    roll_no: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "Jane Teacher",
                    "email": "jane@example.com",
                    "password": "securepassword",
                    "role": "manager",
                }
            ]
        }
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = None
    role: Role | None = None
    status: Status | None = None
    mobile_no: str | None = Field(default=None, max_length=20)
    fcm_id: str | None = None
    image_url: str | None = None
    address: str | None = None
    dob: date | None = None
    gender: str | None = None
    school_name: str | None = None
    roll_no: str | None = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v and len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v

