from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.api.responses import api_response
from lms.dependencies import get_current_user, require_admin
from lms.models import User, get_db
from lms.schemas import (
    ChangePasswordRequest,
    Envelope,
    ProfileUpdateRequest,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from lms.services import users as user_service

router = APIRouter()


def _user_data(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.get(
    "/profile",
    response_model=Envelope[UserResponse],
    summary="Get current user profile",
)
def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return api_response("success", data=_user_data(current_user), message="Profile retrieved successfully")


@router.put(
    "/profile",
    response_model=Envelope[UserResponse],
    summary="Update current user profile",
)
def update_profile(
    body: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Only the fields present in the request body are changed."""
    user = user_service.apply_changes(db, current_user, body.model_dump(exclude_unset=True))
    return api_response("success", data=_user_data(user), message="Profile updated successfully")


@router.post(
    "/profile/change-password",
    response_model=Envelope[dict],
    summary="Change current user password",
)
def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    user_service.change_password(db, current_user, body.current_password, body.new_password)
    return api_response("success", data={}, message="Password changed successfully")


@router.get(
    "/users",
    response_model=Envelope[list[UserResponse]],
    summary="List users (admin)",
)
def list_users(
    _: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    users = db.query(User).order_by(User.id).all()
    return api_response(
        "success",
        data=[_user_data(user) for user in users],
        message="Users retrieved successfully",
    )


@router.post(
    "/add-users",
    response_model=Envelope[UserResponse],
    summary="Create a user (admin)",
)
def add_user(
    body: UserCreateRequest,
    _: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    """New accounts always store the modern password hash."""
    user = user_service.create_user(db, body.model_dump())
    return api_response("success", data=_user_data(user), message="User created successfully")


@router.put(
    "/edit-users/{user_id}",
    response_model=Envelope[UserResponse],
    summary="Update a user (admin)",
)
def edit_user(
    user_id: int,
    body: UserUpdateRequest,
    _: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    user = user_service.get_user_or_404(db, user_id)
    user = user_service.update_user(db, user, body.model_dump(exclude_unset=True))
    return api_response("success", data=_user_data(user), message="User updated successfully")


@router.delete(
    "/delete-users/{user_id}",
    response_model=Envelope[dict],
    summary="Deactivate a user (admin)",
)
def remove_user(
    user_id: int,
    current_user: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    """Soft delete: the account is set inactive and its sessions are revoked."""
    user = user_service.get_user_or_404(db, user_id)
    user_service.deactivate_user(db, user, current_user)
    return api_response("success", data={}, message="User removed successfully")
