"""
Error Handlers

Every failure leaves the API as {"error": {"code", "message", "details"}}.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ...domain.errors import DomainError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _headers() -> dict:
    return {"X-Correlation-Id": get_correlation_id() or ""}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected failures: bad input, unknown ids, upstream rejections"""
    if exc.http_status >= 500:
        logger.error(
            f"Domain error: {exc.error_code} - {exc.message}",
            extra={"error_code": exc.error_code, "status_code": exc.http_status}
        )
    else:
        logger.warning(
            f"Domain error: {exc.error_code} - {exc.message}",
            extra={"error_code": exc.error_code, "status_code": exc.http_status}
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict(), headers=_headers())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body or query did not match its schema"""
    errors = exc.errors()
    logger.warning(
        f"Validation error: {len(errors)} problem(s), "
        f"path={request.url.path}, "
        f"method={request.method}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": _jsonable_errors(errors)}
            }
        },
        headers=_headers()
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions; the stack trace goes to the log only"""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"hint": "Check server logs for details"}
            }
        },
        headers=_headers()
    )


def _jsonable_errors(errors) -> list:
    # ctx may hold exception instances
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.
    
    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
