import logging
import time
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from lms.config import settings
from lms.models.database import Base, _normalize_database_url, engine
from lms.models import AccessToken, OtpChallenge, RefreshToken, User  # noqa: F401 - register models
from lms.models.user import ROLE_ADMIN, STATUS_ACTIVE
from lms.services.passwords import get_password_hash

logger = logging.getLogger(__name__)


def wait_for_db(retries: int, retry_delay_seconds: int) -> None:
    """Wait for database to accept connections before running migrations."""
    last_error = None
    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection established on attempt %s", attempt)
            return
        except OperationalError as exc:
            last_error = exc
            logger.warning(
                "Database not reachable yet (attempt %s/%s): %s",
                attempt,
                retries,
                exc,
            )
            if attempt < retries:
                time.sleep(retry_delay_seconds)

    raise RuntimeError(
        "Database is unreachable after "
        f"{retries} attempts. Check DATABASE_URL and ensure the DB server is running."
    ) from last_error


def init_db():
    wait_for_db(
        retries=settings.DB_CONNECT_RETRIES,
        retry_delay_seconds=settings.DB_CONNECT_RETRY_DELAY_SECONDS,
    )
    if settings.DATABASE_URL.startswith("sqlite://"):
        Base.metadata.create_all(bind=engine)
        return

    run_migrations()
    Base.metadata.create_all(bind=engine)


def run_migrations() -> None:
    """Apply Alembic migrations to the latest revision."""
    try:
        from alembic import command
        from alembic.config import Config
    except ImportError as exc:  # pragma: no cover - environment/setup failure
        raise RuntimeError(
            "Alembic is required for non-sqlite runtime. Install the project with `pip install -e .`."
        ) from exc

    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    script_location = project_root / "alembic"
    if not alembic_ini.exists() or not script_location.exists():
        raise RuntimeError("Alembic configuration is missing (alembic.ini or alembic/ directory not found).")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(script_location))
    config.set_main_option("sqlalchemy.url", _normalize_database_url(settings.DATABASE_URL))
    command.upgrade(config, "head")


def seed_admin_user(db_session) -> None:
    """Create the bootstrap admin from ADMIN_EMAIL/ADMIN_PASSWORD if it is missing."""
    email = settings.ADMIN_EMAIL
    password = settings.ADMIN_PASSWORD
    if not email or not password:
        return
    if db_session.query(User).filter(User.email == email).first():
        return
    admin = User(
        name="Administrator",
        email=email,
        password=get_password_hash(password),
        role=ROLE_ADMIN,
        status=STATUS_ACTIVE,
    )
    db_session.add(admin)
    db_session.commit()
    logger.info("Seeded admin user %s", email)
