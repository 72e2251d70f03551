import logging
import secrets
from datetime import timedelta
from typing import Callable

from sqlalchemy.orm import Session

from lms.config import settings
from lms.errors import InvalidOrExpiredOtp, RateLimited
from lms.models import OtpChallenge, User
from lms.services.auth_tokens import as_utc, db_datetime, utcnow

logger = logging.getLogger(__name__)

OTP_LENGTH = 6

# Delivery hook: receives the user and the plaintext code.
OtpNotifier = Callable[[User, str], None]


def generate_otp() -> str:
    return str(secrets.randbelow(10**OTP_LENGTH)).zfill(OTP_LENGTH)


def get_latest_challenge(db: Session, user_id: int) -> OtpChallenge | None:
    return (
        db.query(OtpChallenge)
        .filter(OtpChallenge.user_id == user_id)
        .order_by(OtpChallenge.created_at.desc(), OtpChallenge.id.desc())
        .first()
    )


def issue_otp(db: Session, user: User, notify: OtpNotifier) -> OtpChallenge:
    """Replace any pending challenge of ``user`` with a new one and send the code."""
    code = generate_otp()
    now = utcnow()

    db.query(OtpChallenge).filter(OtpChallenge.user_id == user.id).delete()
    challenge = OtpChallenge(
        user_id=user.id,
        otp=code,
        verified=False,
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        created_at=now,
    )
    db.add(challenge)
    db.flush()

    notify(user, code)
    logger.info("Issued login OTP for user id=%s", user.id)
    return challenge


def resend_otp(db: Session, user: User, notify: OtpNotifier) -> OtpChallenge:
    latest = get_latest_challenge(db, user.id)
    cooldown = timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SECONDS)
    if latest and latest.created_at and as_utc(latest.created_at) > utcnow() - cooldown:
        logger.info("OTP resend rate limited for user id=%s", user.id)
        raise RateLimited("Please wait before requesting another OTP")
    return issue_otp(db, user, notify)


def verify_otp(db: Session, user_id: int, code: str) -> None:
    """Consume the pending challenge matching ``code``.

    Wrong, already used and expired codes all fail the same way.
    """
    db_now = db_datetime(db, utcnow())
    updated = (
        db.query(OtpChallenge)
        .filter(
            OtpChallenge.user_id == user_id,
            OtpChallenge.otp == code,
            OtpChallenge.verified.is_(False),
            OtpChallenge.expires_at > db_now,
        )
        .update({OtpChallenge.verified: True}, synchronize_session=False)
    )
    if updated != 1:
        logger.info("Rejected OTP for user id=%s", user_id)
        raise InvalidOrExpiredOtp()
