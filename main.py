"""
ClickUp / Microsoft Graph gateway — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI

from api.clickup_routes import router as clickup_router
from api.email_routes import router as email_router
from api.errors import register_exception_handlers
from api.middleware import register_middleware
from api.sheet_routes import router as sheet_router
from auth.routes import config_router as microsoft_router
from auth.routes import router as auth_router
from config.settings import config
from connectors.encryption import is_encryption_enabled
from connectors.microsoft import MicrosoftConnector

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "hpack"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="ClickUp / Microsoft Graph Gateway",
        version="1.0.0",
        description="REST gateway over ClickUp tasks and Microsoft Graph mail and OneDrive.",
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/auth")
    app.include_router(microsoft_router, prefix="/microsoft")
    app.include_router(clickup_router, prefix="/clickup")
    app.include_router(email_router, prefix="/emails")
    app.include_router(sheet_router, prefix="/sheets")

    @app.get("/health")
    async def health() -> dict:
        return {"success": True, "status": "ok"}

    if not config.clickup_api_token:
        logger.warning("CLICKUP_API_TOKEN not set — /clickup routes will be rejected upstream")
    if not MicrosoftConnector().is_configured():
        logger.warning("Microsoft connector not configured (missing client id/secret)")
    if not is_encryption_enabled():
        logger.warning("Session tokens are not encrypted at rest")
    logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
