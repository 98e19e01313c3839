"""
Exception -> HTTP mapping for the portal API.

Every error body carries the toast the UI should show.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from src.error_handler import DuplicateCandidateError, ErrorHandler
from src.integrations.policy.response_wrappers import ApiError, IntegrationResponseError
from src.portal.validation import FormValidationError

logger = logging.getLogger(__name__)

error_handler = ErrorHandler()


def _error_response(status_code: int, detail: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": jsonable_encoder(detail)})


async def form_validation_handler(request: Request, exc: FormValidationError) -> JSONResponse:
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {
            "error": "validation_error",
            "message": exc.message,
            "field_errors": exc.field_errors,
            "toast": error_handler.to_toast(exc),
        },
    )


async def duplicate_candidate_handler(request: Request, exc: DuplicateCandidateError) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        {
            "error": "duplicate_candidate",
            "message": exc.message,
            "duplicate": exc.warning,
            "ownership": exc.ownership,
            "toast": error_handler.to_toast(exc, title="Duplicate Candidate Detected"),
        },
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    status_code = exc.status or status.HTTP_502_BAD_GATEWAY
    logger.warning("Upstream error on %s: %s %s", request.url.path, status_code, exc.message)
    return _error_response(
        status_code,
        {
            "error": (exc.code or "upstream_error").lower(),
            "message": exc.message,
            "field": exc.field,
            "toast": error_handler.to_toast(exc),
        },
    )


async def integration_response_handler(request: Request, exc: IntegrationResponseError) -> JSONResponse:
    logger.error("Malformed upstream response on %s: %s", request.url.path, exc)
    return _error_response(
        status.HTTP_502_BAD_GATEWAY,
        {"error": "integration_response_error", "message": str(exc), "toast": error_handler.to_toast(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Error processing %s: %s", request.url.path, exc, exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error": "internal_error", "message": "Internal server error", "toast": error_handler.to_toast(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FormValidationError, form_validation_handler)
    app.add_exception_handler(DuplicateCandidateError, duplicate_candidate_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(IntegrationResponseError, integration_response_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
