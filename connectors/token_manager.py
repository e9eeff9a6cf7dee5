"""
Token manager — keep a valid Microsoft access token for a session principal.

This is the single interface handlers use to get a bearer token for Graph.

Flow for ``ensure_valid_token``:
  1. Stored token still inside its lifetime → return it, no network.
  2. Side cache has a token for this user → return it.
  3. Refresh via the connector; cache the new token, write the new expiry and
     (if rotated) the new refresh token back onto the principal.
  4. Anything fails → ``None``; the caller answers 401 / reauth required.

There is no lock around steps 2-3: two requests that find the same expired
token can both refresh. Microsoft accepts redundant refreshes and each cache
write replaces the whole entry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from auth.models import SessionPrincipal
from config.settings import config
from connectors.base import BaseConnector
from connectors.encryption import TokenDecryptError, decrypt_token, encrypt_token
from core.cache import KeyValueStore
from core.exceptions import UpstreamAuthError

logger = logging.getLogger(__name__)


def access_token_key(user_id: str) -> str:
    return f"access_token:{user_id}"


class TokenManager:
    """Access-token lifecycle on top of a connector and a TTL store."""

    def __init__(
        self,
        connector: BaseConnector,
        store: KeyValueStore,
        *,
        margin_seconds: Optional[int] = None,
        min_ttl_seconds: Optional[int] = None,
    ) -> None:
        self.connector = connector
        self.store = store
        self.margin = config.token_refresh_margin_seconds if margin_seconds is None else margin_seconds
        self.min_ttl = config.token_cache_min_ttl_seconds if min_ttl_seconds is None else min_ttl_seconds

    def cache_ttl(self, expires_in: int) -> int:
        """Seconds to keep a fresh token cached; never below ``min_ttl``."""
        return max(int(expires_in) - self.margin, self.min_ttl)

    def _cached(self, user_id: str, now: datetime) -> Optional[str]:
        entry: Optional[Dict[str, Any]] = self.store.get(access_token_key(user_id))
        if not entry:
            return None
        if entry.get("expires_at", 0) <= now.timestamp():
            self.store.forget(access_token_key(user_id))
            return None
        return entry.get("token")

    async def ensure_valid_token(
        self,
        principal: SessionPrincipal,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Return a usable access token for ``principal`` or ``None``.

        The principal is mutated in place after a successful refresh; the
        caller persists it.
        """
        now = now or datetime.now(timezone.utc)

        if now < principal.token_expiry:
            try:
                return decrypt_token(principal.encrypted_access_token)
            except TokenDecryptError:
                logger.warning("Stored access token for user %s is unreadable", principal.id)
                return None

        cached = self._cached(principal.id, now)
        if cached:
            return cached

        try:
            refresh_token = decrypt_token(principal.encrypted_refresh_token)
        except TokenDecryptError:
            logger.warning("Stored refresh token for user %s is unreadable", principal.id)
            return None
        if not refresh_token:
            logger.info("No refresh token for user %s — reauth required", principal.id)
            return None

        try:
            refreshed = await self.connector.refresh_access_token(refresh_token)
        except (UpstreamAuthError, httpx.HTTPError) as exc:
            logger.warning("Token refresh failed for user %s: %s", principal.id, exc)
            return None

        access_token = refreshed["access_token"]
        expires_in = int(refreshed.get("expires_in") or 3600)
        ttl = self.cache_ttl(expires_in)
        self.store.put(
            access_token_key(principal.id),
            {"token": access_token, "expires_at": now.timestamp() + ttl},
            ttl=ttl,
        )

        principal.encrypted_access_token = encrypt_token(access_token)
        principal.token_expiry = now + timedelta(seconds=expires_in)
        # Microsoft usually rotates the refresh token; keep the old one if not.
        if refreshed.get("refresh_token"):
            principal.encrypted_refresh_token = encrypt_token(refreshed["refresh_token"])

        logger.info("Refreshed Microsoft token for user %s", principal.id)
        return access_token

    def forget(self, user_id: str) -> None:
        self.store.forget(access_token_key(user_id))
