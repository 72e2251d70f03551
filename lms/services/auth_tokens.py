import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from lms.config import settings
from lms.models import AccessToken, RefreshToken

logger = logging.getLogger(__name__)


class IssuedSession(NamedTuple):
    access_token: str
    refresh_token: str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def db_datetime(db: Session, value: datetime) -> datetime:
    bind = db.get_bind()
    if bind and bind.dialect.name == "sqlite":
        return value.replace(tzinfo=None)
    return value


def _new_token() -> str:
    # 64 URL-safe characters
    return secrets.token_urlsafe(48)


def create_access_token(db: Session, user_id: int) -> str:
    """Mint a JWT for ``user_id`` and record its hash so it can be revoked."""
    expire = utcnow() + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
        "jti": secrets.token_hex(16),
    }
    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    db.add(AccessToken(user_id=user_id, token_hash=hash_token(token), expires_at=expire))
    db.flush()
    return token


def get_valid_access_token(db: Session, raw_token: str) -> AccessToken | None:
    try:
        payload = jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        sub = payload.get("sub")
        if sub is None or payload.get("type") != "access":
            return None
        user_id = int(sub)
    except (JWTError, ValueError):
        return None

    record = (
        db.query(AccessToken)
        .filter(AccessToken.token_hash == hash_token(raw_token), AccessToken.user_id == user_id)
        .first()
    )
    if not record or as_utc(record.expires_at) <= utcnow():
        return None
    return record


def revoke_all_access_tokens(db: Session, user_id: int) -> int:
    return (
        db.query(AccessToken)
        .filter(AccessToken.user_id == user_id)
        .delete()
    )


def issue_refresh_token(
    db: Session,
    user_id: int,
    expires_in_days: int,
    ip: str | None = None,
    user_agent: str | None = None,
) -> tuple[str, RefreshToken]:
    raw = _new_token()
    record = RefreshToken(
        user_id=user_id,
        token_hash=hash_token(raw),
        expires_at=utcnow() + timedelta(days=expires_in_days),
        ip=ip,
        user_agent=user_agent,
    )
    db.add(record)
    db.flush()
    return raw, record


def delete_refresh_tokens(db: Session, user_id: int) -> int:
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id)
        .delete()
    )


def get_valid_refresh_token(db: Session, raw_token: str) -> RefreshToken | None:
    db_now = db_datetime(db, utcnow())
    return (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token_hash == hash_token(raw_token),
            RefreshToken.expires_at > db_now,
        )
        .first()
    )


def claim_refresh_token(db: Session, raw_token: str) -> int | None:
    """Consume a live refresh token and return its owner's id.

    The row is deleted by id and only a delete that removed exactly one row
    counts, so two concurrent refreshes with the same token cannot both win.
    """
    current = get_valid_refresh_token(db, raw_token)
    if not current:
        return None

    user_id = current.user_id
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.id == current.id)
        .delete()
    )
    if deleted != 1:
        return None
    return user_id


def revoke_session(db: Session, user_id: int) -> None:
    revoked = revoke_all_access_tokens(db, user_id)
    dropped = delete_refresh_tokens(db, user_id)
    db.flush()
    logger.info(
        "Revoked %s access and %s refresh token(s) for user id=%s", revoked, dropped, user_id
    )


def issue_session(
    db: Session,
    user_id: int,
    ip: str | None = None,
    user_agent: str | None = None,
) -> IssuedSession:
    """Replace every token of the user with one fresh access/refresh pair.

    Runs inside the caller's transaction; nothing is committed here.
    """
    revoke_session(db, user_id)
    access_token = create_access_token(db, user_id)
    refresh_token, _ = issue_refresh_token(
        db=db,
        user_id=user_id,
        expires_in_days=settings.JWT_REFRESH_EXPIRE_DAYS,
        ip=ip,
        user_agent=user_agent,
    )
    logger.info("Issued session for user id=%s", user_id)
    return IssuedSession(access_token=access_token, refresh_token=refresh_token)
