"""
Exception handlers — the handler boundary.

Every error leaves the app as ``{"success": false, "error": ...}``. Upstream
statuses are mirrored where known; anything unexpected is logged with its
traceback and answered with a generic 500 that carries no exception text.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.exceptions import GatewayError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the gateway's error → JSON mapping."""

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s → %d: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(jsonable_encoder(exc.to_body()), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            {
                "success": False,
                "error": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
            },
            status_code=422,
        )

    @app.exception_handler(httpx.HTTPError)
    async def transport_error(request: Request, exc: httpx.HTTPError) -> JSONResponse:
        logger.error("Upstream transport error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            {"success": False, "error": "Upstream service unavailable"},
            status_code=500,
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"success": False, "error": "Internal server error"},
            status_code=500,
        )
