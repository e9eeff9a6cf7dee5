"""
MicrosoftConnector — OAuth2 authorization-code flow (PKCE) against the
Microsoft identity platform.

The SPA frontend generates the verifier/challenge pair, sends the user to the
authorize URL and posts the returned code plus the verifier to
``POST /auth/token``. This connector performs the two token grants and reads
the signed-in user's profile from Graph.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List
from urllib.parse import urlencode

from clients.base import error_body
from config.settings import config
from connectors.base import BaseConnector
from core.exceptions import UpstreamAuthError, UpstreamRequestError

logger = logging.getLogger(__name__)


class MicrosoftConnector(BaseConnector):
    """OAuth2 connector for Microsoft accounts (Graph scopes)."""

    @property
    def provider_name(self) -> str:
        return "microsoft"

    @property
    def scopes(self) -> List[str]:
        return config.microsoft_scopes

    def is_configured(self) -> bool:
        return bool(config.microsoft_client_id and config.microsoft_client_secret)

    def public_config(self) -> Dict[str, Any]:
        """What the browser needs to start the PKCE flow."""
        return {
            "client_id": config.microsoft_client_id,
            "redirect_uri": config.microsoft_redirect_uri,
            "scopes": config.microsoft_permissions,
            "authorize_url": config.microsoft_authorize_url,
        }

    def get_auth_url(self, state: str, code_challenge: str) -> str:
        params = {
            "client_id": config.microsoft_client_id,
            "redirect_uri": config.microsoft_redirect_uri,
            "response_type": "code",
            "response_mode": "query",
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{config.microsoft_authorize_url}?{urlencode(params)}"

    async def _token_request(self, form: Dict[str, str], grant: str) -> Dict[str, Any]:
        form = {
            "client_id": config.microsoft_client_id,
            "client_secret": config.microsoft_client_secret,
            "scope": " ".join(self.scopes),
            **form,
        }
        async with self._client() as client:
            resp = await client.post(config.microsoft_token_url, data=form)

        if resp.status_code >= 400:
            body = error_body(resp)
            logger.warning("Microsoft %s grant rejected (%d): %s", grant, resp.status_code, body)
            description = body.get("error_description") if isinstance(body, dict) else None
            raise UpstreamAuthError(
                description or f"Microsoft {grant} grant failed",
                extra={"raw": body},
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamAuthError(f"Malformed token response for {grant} grant") from exc
        if not isinstance(data, dict) or "access_token" not in data:
            raise UpstreamAuthError(f"Token response for {grant} grant has no access_token")
        return data

    async def exchange_code(self, code: str, code_verifier: str) -> Dict[str, Any]:
        """Exchange auth code (+ PKCE verifier) for tokens."""
        data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.microsoft_redirect_uri,
                "code_verifier": code_verifier,
            },
            "authorization_code",
        )
        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token"),
            "expires_in": int(data.get("expires_in", 3600)),
        }

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Use refresh token to get a new access token."""
        data = await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            "refresh_token",
        )
        return {
            "access_token": data["access_token"],
            "expires_in": int(data.get("expires_in", 3600)),
            "refresh_token": data.get("refresh_token"),
        }

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        """Read ``/me`` and reduce it to the fields the session keeps."""
        async with self._client() as client:
            resp = await client.get(
                f"{config.microsoft_graph_api}/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if resp.status_code >= 400:
            raise UpstreamRequestError(
                "Failed to read Microsoft profile",
                status_code=resp.status_code,
                raw=error_body(resp),
            )
        me = resp.json()
        email = me.get("mail") or me.get("userPrincipalName") or ""
        return {
            "graph_id": me.get("id", ""),
            "name": me.get("displayName") or email,
            "email": email,
        }
