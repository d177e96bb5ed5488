"""Translate catalog errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog.api.schemas.product import ErrorResponse
from catalog.core.errors import ErrorKind, ProductError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BATCH_LIMIT_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def product_error_handler(request: Request, exc: ProductError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.kind.value}): {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors[".".join(location) or "request"] = error.get("msg", "Invalid value")
    logger.warning(f"{request.method} {request.url.path} has invalid parameters: {errors}")
    body = ErrorResponse(
        code=ErrorKind.INVALID_ARGUMENT.value,
        message="Invalid request parameters",
        errors=errors,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.as_content())


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(code=ErrorKind.INTERNAL.value, message="An unexpected error occurred")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.as_content()
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProductError, product_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
