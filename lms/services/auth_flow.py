"""Login sequencing: credentials -> OTP challenge -> session tokens.

There is no stored login state. A user is awaiting an OTP while an
unverified challenge exists for them and is authenticated while they hold
an access token recorded by :func:`lms.services.auth_tokens.issue_session`.
Each function here commits its own transaction.
"""

import logging

from sqlalchemy.orm import Session

from lms.errors import Unauthenticated, ValidationFailed
from lms.models import User
from lms.models.user import STATUS_ACTIVE
from lms.services import otp
from lms.services.auth_tokens import IssuedSession, claim_refresh_token, issue_session, revoke_session
from lms.services.passwords import verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "The provided credentials are incorrect."
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


def _get_user_or_invalid(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise ValidationFailed.for_field("user_id", "The selected user id is invalid.")
    return user


def login(db: Session, email: str, password: str, notify: otp.OtpNotifier) -> User:
    user = (
        db.query(User)
        .filter(User.email == email, User.status == STATUS_ACTIVE)
        .first()
    )
    if not user:
        logger.info("Login rejected: no active account for submitted email")
        raise Unauthenticated(INVALID_CREDENTIALS, {"email": [INVALID_CREDENTIALS]})
    if not verify_password(password, user.password):
        logger.info("Login rejected: wrong password for user id=%s", user.id)
        raise Unauthenticated(INVALID_CREDENTIALS, {"email": [INVALID_CREDENTIALS]})

    otp.issue_otp(db, user, notify)
    db.commit()
    return user


def verify_login_otp(
    db: Session,
    user_id: int,
    code: str,
    ip: str | None = None,
    user_agent: str | None = None,
) -> IssuedSession:
    user = _get_user_or_invalid(db, user_id)
    if not user.is_active:
        logger.info("OTP verification rejected: user id=%s is inactive", user.id)
        raise Unauthenticated(INVALID_CREDENTIALS, {"user_id": [INVALID_CREDENTIALS]})
    otp.verify_otp(db, user.id, code)
    issued = issue_session(db, user.id, ip=ip, user_agent=user_agent)
    db.commit()
    return issued


def resend_login_otp(db: Session, user_id: int, notify: otp.OtpNotifier) -> None:
    user = _get_user_or_invalid(db, user_id)
    otp.resend_otp(db, user, notify)
    db.commit()


def refresh_session(
    db: Session,
    raw_refresh_token: str,
    ip: str | None = None,
    user_agent: str | None = None,
) -> IssuedSession:
    user_id = claim_refresh_token(db, raw_refresh_token)
    user = db.query(User).filter(User.id == user_id).first() if user_id is not None else None
    if not user or not user.is_active:
        # the presented token stays consumed
        db.commit()
        logger.info("Refresh token rejected")
        raise Unauthenticated(INVALID_REFRESH_TOKEN, {"refresh_token": [INVALID_REFRESH_TOKEN + "."]})

    issued = issue_session(db, user.id, ip=ip, user_agent=user_agent)
    db.commit()
    return issued


def logout(db: Session, user: User) -> None:
    revoke_session(db, user.id)
    db.commit()
    logger.info("User id=%s logged out", user.id)
