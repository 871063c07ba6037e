from logging import getLogger

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog.schemas.movie import FieldError

from .base import AppError
from .movie_exceptions import MovieValidationError

logger = getLogger(__name__)


def _request_field_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if len(loc) > 1 and loc[0] in ("body", "path", "query"):
            loc = loc[1:]
        errors.append(FieldError(field=".".join(loc), message=error["msg"]))
    return errors


def _validation_response(detail: str, errors: list[FieldError]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": detail,
            "errors": [error.model_dump() for error in errors],
        },
    )


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(_: Request, exc: RequestValidationError):
        errors = _request_field_errors(exc)
        fields = ", ".join(sorted({error.field for error in errors}))
        logger.info(f" 400 Error: malformed request ({fields})")
        return _validation_response(f"Request validation failed for: {fields}", errors)

    @app.exception_handler(MovieValidationError)
    async def validation_error_handler(_: Request, exc: MovieValidationError):
        logger.info(f" {exc.status_code} Error: {exc.detail}")
        return _validation_response(exc.detail, exc.errors)

    @app.exception_handler(AppError)
    async def app_error_handler(_: Request, exc: AppError):
        logger.warning(f" {exc.status_code} Error: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def generic_exception_handler(_: Request, exc: Exception):
        logger.error("Unhandled error", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected error occurred."},
        )
