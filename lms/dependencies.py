from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from lms.errors import Forbidden, InactiveUser, Unauthenticated
from lms.models import User, get_db
from lms.services.auth_tokens import get_valid_access_token

security = HTTPBearer(auto_error=False)


def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User | None:
    if not credentials:
        return None
    record = get_valid_access_token(db, credentials.credentials)
    if record is None:
        return None
    return db.query(User).filter(User.id == record.user_id).first()


def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    if user is None:
        raise Unauthenticated(headers={"WWW-Authenticate": "Bearer"})
    if not user.is_active:
        raise InactiveUser()
    return user


def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not user.is_admin:
        raise Forbidden()
    return user
