from typing import Any

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from sessiongate.errors import UserError

logger = structlog.get_logger(__name__)


def create_json_error_response(status_code: int, message: str, code: str, **extra: Any) -> JSONResponse:
    """Create JSON error response in the {success, message, code} envelope."""
    content: dict[str, Any] = {"success": False, "message": message, "code": code, **extra}
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with their own status codes."""
    if not isinstance(exc, UserError):
        return await general_exception_handler(_, exc)
    return create_json_error_response(status_code=exc.status_code, message=str(exc), code=exc.code)


async def request_validation_handler(_: Request, exc: Exception) -> Response:
    """Malformed or incomplete request bodies."""
    fields = []
    if isinstance(exc, RequestValidationError):
        fields = [".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()]
    message = f"Missing or invalid fields: {', '.join(fields)}" if fields else "Missing or invalid fields"
    return create_json_error_response(status_code=400, message=message, code="MISSING_FIELDS")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500), including store failures."""
    logger.exception("unexpected_error", error_type=type(exc).__name__)
    return create_json_error_response(status_code=500, message="An unexpected error occurred.", code="SERVER_ERROR")
