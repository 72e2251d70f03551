import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings:
    @staticmethod
    def _get_int(name: str, default: int) -> int:
        return int(os.getenv(name, str(default)))

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        raw = os.getenv(name)
        if raw is None:
            return default
        return raw.strip().lower() in {"1", "true", "yes", "on"}

    @property
    def APP_ENV(self) -> str:
        return os.getenv("APP_ENV", "development").strip().lower()

    @property
    def BASE_URL(self) -> str:
        return os.getenv("BASE_URL", "http://localhost:8000")

    @property
    def DATABASE_URL(self) -> str:
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        return database_url

    @property
    def DB_CONNECT_RETRIES(self) -> int:
        return self._get_int("DB_CONNECT_RETRIES", 10)

    @property
    def DB_CONNECT_RETRY_DELAY_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_RETRY_DELAY_SECONDS", 2)

    @property
    def JWT_SECRET(self) -> str:
        return os.getenv("JWT_SECRET", "change-me-in-production")

    @property
    def JWT_ALGORITHM(self) -> str:
        return os.getenv("JWT_ALGORITHM", "HS256")

    @property
    def JWT_EXPIRE_MINUTES(self) -> int:
        return self._get_int("JWT_EXPIRE_MINUTES", 60)

    @property
    def JWT_REFRESH_EXPIRE_DAYS(self) -> int:
        return self._get_int("JWT_REFRESH_EXPIRE_DAYS", 30)

    @property
    def OTP_EXPIRE_MINUTES(self) -> int:
        return self._get_int("OTP_EXPIRE_MINUTES", 10)

    @property
    def OTP_RESEND_COOLDOWN_SECONDS(self) -> int:
        return self._get_int("OTP_RESEND_COOLDOWN_SECONDS", 120)

    @property
    def SMTP_HOST(self) -> str:
        return os.getenv("SMTP_HOST", "")

    @property
    def SMTP_PORT(self) -> int:
        return self._get_int("SMTP_PORT", 587)

    @property
    def SMTP_USER(self) -> str:
        return os.getenv("SMTP_USER", "")

    @property
    def SMTP_PASSWORD(self) -> str:
        return os.getenv("SMTP_PASSWORD", "")

    @property
    def SMTP_FROM_EMAIL(self) -> str:
        return os.getenv("SMTP_FROM_EMAIL", "")

    @property
    def SMTP_FROM_NAME(self) -> str:
        return os.getenv("SMTP_FROM_NAME", "LMS")

    @property
    def SMTP_USE_TLS(self) -> bool:
        return self._get_bool("SMTP_USE_TLS", True)

    @property
    def SMTP_SEND_RETRIES(self) -> int:
        return self._get_int("SMTP_SEND_RETRIES", 3)

    @property
    def ADMIN_EMAIL(self) -> str:
        return os.getenv("ADMIN_EMAIL", "").strip()

    @property
    def ADMIN_PASSWORD(self) -> str:
        return os.getenv("ADMIN_PASSWORD", "")

    @property
    def CORS_ORIGINS(self) -> str:
        return os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")


settings = Settings()

# Validate critical settings
if settings.JWT_SECRET == "change-me-in-production":
    import warnings
    warnings.warn("JWT_SECRET is using default value. Change it in production!", UserWarning)
