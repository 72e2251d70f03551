from lms.models.database import Base, get_db
from lms.models.user import User
from lms.models.auth_token import AccessToken, OtpChallenge, RefreshToken

__all__ = ["Base", "get_db", "User", "AccessToken", "OtpChallenge", "RefreshToken"]
