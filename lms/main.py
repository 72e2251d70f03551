import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms.api import auth, users
from lms.api.responses import register_exception_handlers
from lms.config import settings
from lms.db_init import init_db, seed_admin_user
from lms.models import get_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("lms.startup")


def _is_localhost(host: str | None) -> bool:
    return host in {"localhost", "127.0.0.1"}


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


def _is_production_runtime() -> bool:
    return settings.APP_ENV in {"prod", "production"}


def _get_cors_origins(cors_raw: str) -> list[str]:
    return [origin.strip() for origin in cors_raw.split(",") if origin.strip()]


def _validate_database_url_for_runtime(database_url: str) -> None:
    parsed = urlparse(database_url)
    scheme = parsed.scheme
    host = parsed.hostname
    db_name = parsed.path.lstrip("/")
    postgres_schemes = {"postgres", "postgresql", "postgresql+psycopg"}

    if not scheme:
        raise RuntimeError("DATABASE_URL is missing URL scheme (expected postgresql:// or postgresql+psycopg://).")
    if scheme == "sqlite":
        if _is_production_runtime():
            raise RuntimeError("SQLite DATABASE_URL is not allowed when APP_ENV=production.")
        return
    if scheme not in postgres_schemes:
        raise RuntimeError(
            f"DATABASE_URL has unsupported scheme '{scheme}' "
            "(expected postgresql:// or postgresql+psycopg://)."
        )
    if not host:
        raise RuntimeError("DATABASE_URL is missing host.")
    if not db_name:
        raise RuntimeError("DATABASE_URL is missing database name in path.")


def _db_url_diagnostics(database_url: str) -> str:
    parsed = urlparse(database_url)
    host = parsed.hostname or "<missing>"
    port = parsed.port or "<missing>"
    db_name = parsed.path.lstrip("/") or "<missing>"
    scheme = parsed.scheme or "<missing>"

    tips = []
    if _is_localhost(host):
        tips.append("Host points to localhost; make sure the database runs on this machine.")
    if scheme in {"postgres", "postgresql"}:
        tips.append("URL scheme is fine; app normalizes it to postgresql+psycopg internally.")
    if not tips:
        tips.append("URL structure looks valid; check network access, DB credentials, and DB service status.")

    return (
        f"scheme={scheme}, host={host}, port={port}, database={db_name}; "
        f"tips={' | '.join(tips)}"
    )


def _validate_required_env_for_runtime() -> None:
    errors = []
    warnings = []
    is_production = _is_production_runtime()

    jwt_secret = settings.JWT_SECRET.strip()
    if not jwt_secret:
        errors.append("JWT_SECRET is required.")
    elif is_production and jwt_secret == "change-me-in-production":
        errors.append("JWT_SECRET uses insecure default value in production.")

    if not _is_http_url(settings.BASE_URL):
        errors.append("BASE_URL must be an absolute http(s) URL, e.g. https://lms.example.com")

    origins = _get_cors_origins(settings.CORS_ORIGINS)
    if not origins:
        errors.append("CORS_ORIGINS must contain at least one comma-separated origin URL.")
    else:
        invalid_origins = [origin for origin in origins if not _is_http_url(origin)]
        if invalid_origins:
            errors.append(f"CORS_ORIGINS contains invalid URL(s): {', '.join(invalid_origins)}")

    if not settings.SMTP_HOST or not settings.SMTP_FROM_EMAIL:
        message = "SMTP_HOST/SMTP_FROM_EMAIL are not set; login OTP emails cannot be delivered."
        if is_production:
            errors.append(message)
        else:
            warnings.append(message)

    if warnings:
        logger.warning("Startup environment warnings: %s", " | ".join(warnings))

    if errors:
        raise RuntimeError("Startup environment validation failed: " + " | ".join(errors))


@asynccontextmanager
async def lifespan(app: FastAPI):
    database_url = "<unavailable>"
    logger.info("Application startup initiated.")
    try:
        database_url = settings.DATABASE_URL
        logger.info("DATABASE_URL diagnostics at startup: %s", _db_url_diagnostics(database_url))
        _validate_database_url_for_runtime(database_url)
        _validate_required_env_for_runtime()
        init_db()
    except Exception as exc:
        diagnostics = (
            _db_url_diagnostics(database_url)
            if database_url != "<unavailable>"
            else "DATABASE_URL unavailable (missing or unreadable)."
        )
        logger.exception(
            "Database initialization failed: %s. DATABASE_URL diagnostics: %s",
            str(exc),
            diagnostics,
        )
        raise
    db = next(get_db())
    try:
        seed_admin_user(db)
    finally:
        db.close()
    logger.info("Application startup completed successfully.")
    yield


app = FastAPI(
    title="LMS API",
    description=(
        "Learning-management backend. Sign in with `POST /api/login`, confirm the emailed code with "
        "`POST /api/verify-otp`, then use **Authorize** with the returned access token."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Login with OTP, token refresh and logout."},
        {"name": "Users", "description": "Profile and admin user management."},
    ],
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        **openapi_schema.get("components", {}).get("securitySchemes", {}),
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Access token from POST /api/verify-otp or POST /api/refresh",
        },
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(settings.CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(users.router, prefix="/api", tags=["Users"])


@app.get("/")
def root():
    return {"status": "ok", "service": "LMS API"}


@app.get("/health")
def health():
    return {"status": "ok"}
