import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lms.errors import ApiError

logger = logging.getLogger(__name__)

# type -> (status, default message, default data, log level)
RESPONSE_TYPES: dict[str, tuple[int, str, Any, int]] = {
    "success": (200, "Success", "", logging.INFO),
    "error": (500, "Server Error", "", logging.ERROR),
    "not_found": (404, "Record not found", "", logging.WARNING),
    "validation_error": (422, "Validation failed", "", logging.WARNING),
    "unauthorized": (403, "You do not have permission to access this resource", "", logging.WARNING),
    "unauthenticated": (401, "Authentication Required", "User not authenticated", logging.WARNING),
    "inactive_user": (
        402,
        "Inactive Account",
        "Your account is inactive. Please contact administrator",
        logging.WARNING,
    ),
    "too_many_requests": (
        429,
        "too_many_requests",
        "Too many requests. Please try again later",
        logging.WARNING,
    ),
}

_STATUS_TO_TYPE = {
    401: "unauthenticated",
    402: "inactive_user",
    403: "unauthorized",
    404: "not_found",
    422: "validation_error",
    429: "too_many_requests",
}


def api_response(
    response_type: str = "success",
    data: Any = None,
    message: str = "",
    status: int | None = None,
    http_status: int | None = None,
    should_log: bool = False,
) -> JSONResponse:
    """Build the standard ``{status, msg, data}`` envelope."""
    default_status, default_message, default_data, log_level = RESPONSE_TYPES.get(
        response_type, RESPONSE_TYPES["error"]
    )
    status = status or default_status
    message = message or default_message
    if data is None or data == "":
        data = default_data

    if should_log:
        logger.log(log_level, "%s: %s (Status: %s)", response_type, message, status)

    body = {"status": status, "msg": message, "data": jsonable_encoder(data)}
    return JSONResponse(status_code=http_status or status, content=body)


def _validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as the standard envelope."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        response = api_response(
            exc.response_type,
            data=exc.data,
            message=exc.message,
            status=exc.status_code,
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return api_response("validation_error", data=_validation_errors(exc), message="Validation failed")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        response_type = _STATUS_TO_TYPE.get(exc.status_code, "error")
        message = exc.detail if isinstance(exc.detail, str) else ""
        response = api_response(response_type, message=message, status=exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return api_response("error")
