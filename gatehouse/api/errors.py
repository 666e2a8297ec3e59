from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatehouse.api.templating import render
from gatehouse.services.credential_store import StoreUnavailable

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something broke!"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        location = (exc.headers or {}).get("Location")
        if location and 300 <= exc.status_code < 400:
            return RedirectResponse(url=location, status_code=exc.status_code)
        return render(
            request,
            "error.html",
            {"title": "Error", "status": exc.status_code, "detail": exc.detail},
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return render(
            request,
            "error.html",
            {"title": "Bad request", "status": 422, "detail": "The submitted form could not be processed."},
            status_code=422,
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return render(
            request,
            "error.html",
            {"title": "Unavailable", "status": 503, "detail": "Service temporarily unavailable."},
            status_code=503,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return render(
            request,
            "error.html",
            {"title": "Error", "status": 500, "detail": GENERIC_ERROR},
            status_code=500,
        )
