"""
FastAPI dependencies (shared across routes).

Every outbound client is built here, so tests swap the whole upstream side
by overriding ``get_transport`` (and ``get_store`` for a fresh cache).
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Depends, Request

from auth.models import SessionPrincipal
from auth.session import SessionManager
from clients.clickup import ClickUpClient
from clients.graph_drive import FileLocator, GraphDriveClient
from clients.graph_mail import GraphMailClient
from clients.graph_sheets import GraphSheetClient
from connectors.microsoft import MicrosoftConnector
from connectors.token_manager import TokenManager
from core.cache import KeyValueStore, get_default_store
from core.exceptions import ReauthRequired

logger = logging.getLogger(__name__)


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport; ``None`` means the real network."""
    return None


def get_store() -> KeyValueStore:
    return get_default_store()


def get_connector(
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> MicrosoftConnector:
    return MicrosoftConnector(transport=transport)


def get_session_manager(store: KeyValueStore = Depends(get_store)) -> SessionManager:
    return SessionManager(store)


def get_token_manager(
    connector: MicrosoftConnector = Depends(get_connector),
    store: KeyValueStore = Depends(get_store),
) -> TokenManager:
    return TokenManager(connector, store)


def get_clickup_client(
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> ClickUpClient:
    return ClickUpClient(transport=transport)


# ── Session / Graph auth ─────────────────────────────────────────────────


def require_principal(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionPrincipal:
    principal = sessions.load(request)
    if principal is None:
        raise ReauthRequired("User not authenticated")
    return principal


async def get_graph_token(
    request: Request,
    principal: SessionPrincipal = Depends(require_principal),
    sessions: SessionManager = Depends(get_session_manager),
    tokens: TokenManager = Depends(get_token_manager),
) -> str:
    """Valid Graph bearer token for the session user, refreshing if needed."""
    before = principal.model_dump()
    token = await tokens.ensure_valid_token(principal)
    if not token:
        raise ReauthRequired("Failed to refresh token. Please re-authenticate.")
    if principal.model_dump() != before:
        sessions.save(request, principal)
    return token


def get_mail_client(
    token: str = Depends(get_graph_token),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> GraphMailClient:
    return GraphMailClient(token, transport=transport)


def get_sheet_client(
    token: str = Depends(get_graph_token),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> GraphSheetClient:
    return GraphSheetClient(token, transport=transport)


def get_file_locator(
    token: str = Depends(get_graph_token),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
    store: KeyValueStore = Depends(get_store),
) -> FileLocator:
    return FileLocator(GraphDriveClient(token, transport=transport), store)
