"""
BaseConnector — abstract interface for OAuth2 identity providers.

A provider subclasses this and implements the code exchange and refresh
grants. The browser side runs the PKCE dance; the backend only ever sees the
authorization code and the verifier.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx


class BaseConnector(ABC):
    """Abstract base for OAuth2 (authorization code + PKCE) providers."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug, e.g. 'microsoft'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested from the provider."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, state: str, code_challenge: str) -> str:
        """
        Build the provider's authorization URL.

        Parameters
        ----------
        state : str
            Opaque CSRF state echoed back on the redirect.
        code_challenge : str
            S256 PKCE challenge derived from the client's verifier.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str, code_verifier: str) -> Dict[str, Any]:
        """
        Exchange the authorization code for tokens.

        Returns
        -------
        dict with keys: access_token, refresh_token, expires_in

        Raises
        ------
        UpstreamAuthError
            The provider answered with a non-2xx status.
        """
        ...

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Refresh an expired access token.

        Returns
        -------
        dict with keys: access_token, expires_in, (optional) refresh_token
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """Return True if client id / secret are present."""
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=30.0)
