import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import ErrorDetail, ErrorResponse
from services.exceptions import GradingError

logger = logging.getLogger(__name__)


def _error_body(code, message, details=None) -> dict:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return body.model_dump(mode="json", exclude_none=True)


def add_error_handlers(app: FastAPI):
    # ✅ domain errors: not found (404) / validation (400)
    @app.exception_handler(GradingError)
    async def grading_error_handler(request: Request, exc: GradingError):
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.status_code, exc.message))

    # ✅ HTTPException raised by dependencies / routers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    # ✅ request payload validation
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body("VALIDATION_ERROR", "Request validation failed", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", str(exc)))
