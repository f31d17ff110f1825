import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from spacehub.errors import AccessDeniedError, AuthenticationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, errors: list[object] | None = None
) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content: dict[str, object] = {"message": message}
    if error_type:
        content["type"] = error_type
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        status_code = 401
        error_type = "authentication_error"
    elif isinstance(exc, AccessDeniedError):
        status_code = 403
        error_type = "access_denied"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    elif isinstance(exc, ConflictError):
        status_code = 409
        error_type = "conflict"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def request_validation_handler(_: Request, exc: Exception) -> Response:
    """Report request schema failures as 400 with per-field details."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return create_json_error_response(
        status_code=400,
        message="Invalid request data",
        error_type="validation_error",
        errors=jsonable_encoder(errors),
    )


async def duplicate_key_handler(_: Request, exc: Exception) -> Response:
    """A unique index rejected the write."""
    logger.info("Duplicate key: %s", exc)
    return create_json_error_response(status_code=409, message="Resource already exists", error_type="conflict")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
