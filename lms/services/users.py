import logging
from typing import Any

from sqlalchemy.orm import Session

from lms.errors import NotFound, ValidationFailed
from lms.models import User
from lms.models.user import STATUS_INACTIVE
from lms.services.auth_tokens import revoke_session
from lms.services.passwords import get_password_hash, verify_password

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = frozenset({"name", "email", "role", "status"})


def _ensure_email_available(db: Session, email: str, exclude_user_id: int | None = None) -> None:
    query = db.query(User).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ValidationFailed.for_field("email", "The email has already been taken.")


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def apply_changes(db: Session, user: User, changes: dict[str, Any]) -> User:
    changes = {field: value for field, value in changes.items() if value is not None or field not in REQUIRED_FIELDS}
    email = changes.get("email")
    if email and email != user.email:
        _ensure_email_available(db, email, exclude_user_id=user.id)
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password):
        raise ValidationFailed.for_field("current_password", "Current password is incorrect")
    user.password = get_password_hash(new_password)
    db.commit()
    logger.info("Password changed for user id=%s", user.id)


def create_user(db: Session, data: dict[str, Any]) -> User:
    _ensure_email_available(db, data["email"])
    password = data.pop("password")
    user = User(**data, password=get_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user id=%s with role=%s", user.id, user.role)
    return user


def update_user(db: Session, user: User, changes: dict[str, Any]) -> User:
    password = changes.pop("password", None)
    if password:
        user.password = get_password_hash(password)
    if changes.get("status") == STATUS_INACTIVE:
        revoke_session(db, user.id)
    return apply_changes(db, user, changes)


def deactivate_user(db: Session, user: User, acting_user: User) -> None:
    if user.id == acting_user.id:
        raise ValidationFailed("You cannot remove your own account")
    user.status = STATUS_INACTIVE
    revoke_session(db, user.id)
    db.commit()
    logger.info("User id=%s deactivated by user id=%s", user.id, acting_user.id)
