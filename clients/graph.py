"""Microsoft Graph v1.0 base client (bearer token per request)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from clients.base import ApiClient
from config.settings import config


class GraphClient(ApiClient):
    service_name = "Graph"

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url or config.microsoft_graph_api,
            {"Authorization": f"Bearer {access_token}"},
            transport=transport,
        )

    def _upstream_message(self, body: Any, fallback: str) -> str:
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return f"{fallback}: {err['message']}"
        return fallback

    async def _collect(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        error: str = "Failed to list items",
    ) -> List[Dict[str, Any]]:
        """All items of a collection, following ``@odata.nextLink``."""
        items: List[Dict[str, Any]] = []
        url: Optional[str] = path
        while url:
            data = await self._request("GET", url, params=params, error=error)
            items.extend(data.get("value") or [])
            url = data.get("@odata.nextLink")
            params = None  # nextLink already carries the query
        return items
