import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..services.renewals import NegotiationError
from ..services.tasks import TaskTransitionError

logger = logging.getLogger(__name__)


class FieldValidationError(Exception):
    """Field-level rejection raised by routers before anything is written."""

    def __init__(self, errors: Dict[str, str], detail: Optional[str] = None) -> None:
        super().__init__(detail or "Validation failed.")
        self.errors = errors
        self.detail = detail or "Validation failed."


def _validation_response(request: Request, detail: str, errors: Any) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": detail, "errors": errors, "path": str(request.url)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return _validation_response(request, "Validation failed.", jsonable_encoder(exc.errors()))

    @app.exception_handler(ValidationError)
    async def model_validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:  # type: ignore[override]
        return _validation_response(request, "Validation failed.", jsonable_encoder(exc.errors(include_url=False, include_context=False)))

    @app.exception_handler(FieldValidationError)
    async def field_exception_handler(request: Request, exc: FieldValidationError) -> JSONResponse:  # type: ignore[override]
        return _validation_response(request, exc.detail, exc.errors)

    @app.exception_handler(NegotiationError)
    async def negotiation_exception_handler(request: Request, exc: NegotiationError) -> JSONResponse:  # type: ignore[override]
        return _validation_response(request, str(exc), exc.errors)

    @app.exception_handler(TaskTransitionError)
    async def transition_exception_handler(request: Request, exc: TaskTransitionError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(status_code=409, content={"detail": str(exc), "path": str(request.url)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error.",
                "path": str(request.url),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "path": str(request.url)}
        if exc.headers:
            payload["headers"] = exc.headers
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)
