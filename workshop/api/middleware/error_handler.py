"""
Error rendering for the ledger API.

Every failure reaches the client as an ``ErrorResponse``: a machine-readable
``error_code``, a message, a recovery hint and, for ledger errors, the
structured ``details`` the exception carried (shortfall, adjustment id...).
"""

import traceback
from collections.abc import Awaitable, Callable
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from workshop.application.dto.responses import ErrorResponse
from workshop.config import get_logger
from workshop.core.exceptions import (
    ConfigurationError,
    ConsistencyDriftError,
    DuplicateAutomationError,
    ImmutabilityError,
    InsufficientStockError,
    MaterialNotFoundError,
    MovementNotFoundError,
    PurchaseNotFoundError,
    StorageError,
    ValidationError,
    WorkshopError,
)

logger = get_logger(__name__)


# Map exceptions to HTTP status codes; first match wins, so subclasses go first
EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    MaterialNotFoundError: status.HTTP_404_NOT_FOUND,
    MovementNotFoundError: status.HTTP_404_NOT_FOUND,
    PurchaseNotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    ImmutabilityError: status.HTTP_409_CONFLICT,
    DuplicateAutomationError: status.HTTP_409_CONFLICT,
    ConsistencyDriftError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ValueError: status.HTTP_400_BAD_REQUEST,
}

# Recovery hints keyed by error_code
HINT_MAP: dict[str, str] = {
    "MATERIAL_NOT_FOUND": "Check the material ID and try GET /api/materials to list materials.",
    "MOVEMENT_NOT_FOUND": "Check the movement ID and try GET /api/materials/{id}/movements.",
    "PURCHASE_NOT_FOUND": "Check the purchase ID; deleted purchases are not returned.",
    "INVALID_TRANSITION": "Cancelled purchases are final. Create a new purchase instead.",
    "INSUFFICIENT_STOCK": "Not enough stock on hand. Receive stock or adjust the quantity first.",
    "IMMUTABLE_RECORD": "Ledger records cannot be edited. Change the purchase status or record a new movement.",
    "MOVEMENT_INACTIVE": "The movement was already reversed.",
    "SUPERSEDED_MOVEMENT": "A later stock adjustment fixed the level. Record a new adjustment instead.",
    "PURCHASE_HAS_MOVEMENTS": "Purchases that touched the ledger are kept for audit. Cancel it instead.",
    "DUPLICATE_AUTOMATION": "The purchase receipt is already booked.",
    "CONSISTENCY_DRIFT": "Cached stock disagrees with the ledger. Investigate before correcting with an adjustment.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "DATABASE_ERROR": "The ledger database rejected the operation. Retry, then check the server log.",
    "ValueError": "A value in the request is out of range.",
}

# Fallbacks when the error code has no hint of its own
STATUS_HINTS: dict[int, str] = {
    400: "The request was understood but refused by a ledger rule.",
    404: "Nothing exists at this path or id.",
    405: "This path does not accept that method.",
    409: "The request conflicts with the current ledger state.",
    500: "Unexpected server error; the request id is in the server log.",
}


def _get_hint(error_code: str, status_code: int) -> str:
    """Hint for ``error_code``, else the generic one for the status."""
    return HINT_MAP.get(error_code) or STATUS_HINTS.get(status_code, "")


def _status_for(exc: Exception) -> int:
    for exc_type, code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Convert an exception to a standardized JSON response."""
    status_code = _status_for(exc)

    if isinstance(exc, WorkshopError):
        error_code = exc.code
        message = exc.message
        details = exc.details or None
    else:
        error_code = exc.__class__.__name__
        message = str(exc)
        details = None

    request_id = getattr(request.state, "request_id", None)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_error",
        request_id=request_id,
        path=request.url.path,
        error_type=error_code,
        error=message,
        traceback=traceback.format_exc() if status_code >= 500 else None,
    )

    error_response = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=_get_hint(error_code, status_code),
        details=details,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Last-resort error rendering.

    Catches anything the exception handlers below did not, so clients
    always get an ``ErrorResponse`` body.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return build_error_response(request, e)


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors to ``{"body.quantity": "Input should be greater than 0"}``."""
    fields: dict[str, str] = {}
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"])
        fields.setdefault(loc, error["msg"])
    return fields


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers that render every error as an ``ErrorResponse``."""

    @app.exception_handler(WorkshopError)
    async def workshop_exception_handler(request: Request, exc: WorkshopError) -> JSONResponse:
        return build_error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = _field_errors(exc)
        logger.info("request_rejected", path=request.url.path, fields=list(fields))
        body = ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            hint=HINT_MAP["VALIDATION_ERROR"],
            detail="; ".join(f"{loc}: {msg}" for loc, msg in fields.items()),
            details={"fields": fields},
            path=request.url.path,
        )
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Routing errors (unknown path, wrong method) from Starlette."""
        try:
            error_code = HTTPStatus(exc.status_code).name
        except ValueError:
            error_code = "HTTP_ERROR"
        body = ErrorResponse(
            error_code=error_code,
            message=str(exc.detail) if exc.detail else "An error occurred",
            hint=_get_hint(error_code, exc.status_code),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(mode="json"),
            headers=getattr(exc, "headers", None),
        )
