"""Exception handlers rendering domain errors as structured responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ballot_api.core.errors import BallotApiError, RestoreFailedError, StoreUnavailableError
from ballot_api.schemas.common import ErrorResponse


def _render(exc: BallotApiError, errors: list[dict] | None = None) -> JSONResponse:
    body = ErrorResponse(detail=exc.message, code=exc.code, errors=errors)
    headers = {"Retry-After": "5"} if isinstance(exc, StoreUnavailableError) else None
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain errors and bare ValueErrors.

    Args:
        app: The FastAPI application.
    """

    @app.exception_handler(RestoreFailedError)
    async def restore_failed_handler(request: Request, exc: RestoreFailedError) -> JSONResponse:
        # Only administrators can reach restore, so the store detail is safe to return.
        errors = [{"store_error": exc.detail}] if exc.detail else None
        return _render(exc, errors)

    @app.exception_handler(BallotApiError)
    async def ballot_api_error_handler(request: Request, exc: BallotApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("{} {} failed: {} ({})", request.method, request.url.path, exc.code, exc.message)
        return _render(exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )
