"""Password verification with support for legacy credential formats.

Accounts imported from the previous platform may still hold a plaintext,
MD5, SHA-1 or SHA-256 credential. Those are checked first, in that order,
before the salted hashes passlib understands: pbkdf2_sha256, which every new
account and every password change writes, and the bcrypt (``$2y$``) hashes
the previous platform already wrote for migrated accounts. Retiring a legacy
scheme means dropping it from ``PASSWORD_STRATEGIES``; callers only use
:func:`verify_password`.
"""

import hashlib
import hmac
import logging
from typing import Callable, NamedTuple, Sequence

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], default="pbkdf2_sha256", deprecated="auto")


class PasswordStrategy(NamedTuple):
    name: str
    check: Callable[[str, str], bool]


def _same(left: str, right: str) -> bool:
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def _hex_digest_check(algorithm: str) -> Callable[[str, str], bool]:
    def check(plain: str, stored: str) -> bool:
        digest = hashlib.new(algorithm, plain.encode("utf-8")).hexdigest()
        return _same(digest, stored)

    return check


def _passlib_check(scheme: str) -> Callable[[str, str], bool]:
    def check(plain: str, stored: str) -> bool:
        try:
            if pwd_context.identify(stored) != scheme:
                return False
            return pwd_context.verify(plain, stored)
        except (ValueError, TypeError):
            # Legacy digests and malformed hashes land here.
            return False

    return check


PASSWORD_STRATEGIES: tuple[PasswordStrategy, ...] = (
    PasswordStrategy("plaintext", _same),
    PasswordStrategy("md5", _hex_digest_check("md5")),
    PasswordStrategy("sha1", _hex_digest_check("sha1")),
    PasswordStrategy("sha256", _hex_digest_check("sha256")),
    PasswordStrategy("pbkdf2_sha256", _passlib_check("pbkdf2_sha256")),
    PasswordStrategy("bcrypt", _passlib_check("bcrypt")),
)


class CredentialVerifier:
    def __init__(self, strategies: Sequence[PasswordStrategy] = PASSWORD_STRATEGIES):
        self.strategies = tuple(strategies)

    def matching_scheme(self, plain: str, stored: str | None) -> str | None:
        """Return the name of the first strategy accepting ``plain``, if any."""
        if not plain or not stored:
            return None
        for strategy in self.strategies:
            if strategy.check(plain, stored):
                return strategy.name
        return None

    def verify(self, plain: str, stored: str | None) -> bool:
        return self.matching_scheme(plain, stored) is not None


default_verifier = CredentialVerifier()


def verify_password(plain: str, stored: str | None) -> bool:
    scheme = default_verifier.matching_scheme(plain, stored)
    if scheme is not None and scheme != pwd_context.default_scheme():
        logger.info("Password accepted via legacy scheme %s", scheme)
    return scheme is not None


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
