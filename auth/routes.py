"""
Auth API routes — Microsoft code exchange, current user, logout, and the
public OAuth config the SPA needs to start PKCE.

Route prefixes: /auth, /microsoft
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from api.dependencies import (
    get_connector,
    get_session_manager,
    get_token_manager,
    require_principal,
)
from auth.models import SessionPrincipal
from auth.session import SessionManager
from connectors.encryption import encrypt_token
from connectors.microsoft import MicrosoftConnector
from connectors.token_manager import TokenManager
from utils.schemas import TokenExchangeRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])
config_router = APIRouter(tags=["microsoft"])


@config_router.get("/config")
async def microsoft_config(
    connector: MicrosoftConnector = Depends(get_connector),
) -> Dict[str, Any]:
    """Client id, redirect URI and scopes for the browser-side PKCE flow."""
    return connector.public_config()


@router.post("/token")
async def exchange_token(
    req: TokenExchangeRequest,
    request: Request,
    connector: MicrosoftConnector = Depends(get_connector),
    sessions: SessionManager = Depends(get_session_manager),
) -> Dict[str, Any]:
    """Exchange the authorization code, read the profile, open a session."""
    tokens = await connector.exchange_code(req.code, req.code_verifier)
    profile = await connector.fetch_profile(tokens["access_token"])

    principal = SessionPrincipal(
        id=str(uuid.uuid4()),
        name=profile["name"],
        email=profile["email"],
        provider_email=profile["email"],
        provider_graph_id=profile["graph_id"],
        encrypted_access_token=encrypt_token(tokens["access_token"]),
        encrypted_refresh_token=encrypt_token(tokens.get("refresh_token") or ""),
        token_expiry=datetime.now(timezone.utc) + timedelta(seconds=tokens["expires_in"]),
    )
    # fresh sid on every login
    sessions.clear(request)
    sessions.save(request, principal)
    logger.info("Signed in %s (%s)", principal.email, principal.id)

    return {
        "success": True,
        "expires_in": tokens["expires_in"],
        "user": principal.public_view(),
    }


@router.get("/user")
async def current_user(
    principal: SessionPrincipal = Depends(require_principal),
) -> Dict[str, Any]:
    return {"success": True, "user": principal.public_view()}


@router.post("/logout")
async def logout(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
    tokens: TokenManager = Depends(get_token_manager),
) -> Dict[str, Any]:
    principal = sessions.load(request)
    if principal is not None:
        tokens.forget(principal.id)
        logger.info("Signed out %s", principal.id)
    sessions.clear(request)
    return {"success": True, "message": "Logged out successfully"}
