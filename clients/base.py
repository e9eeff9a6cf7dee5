"""
ApiClient — shared plumbing for the ClickUp and Graph clients.

One method call on a client maps to one upstream request (or a short fixed
sequence). Non-2xx responses and bodies that are not JSON become
``UpstreamRequestError`` carrying the upstream status and body. Nothing is
retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from core.exceptions import UpstreamRequestError

logger = logging.getLogger(__name__)


def error_body(resp: httpx.Response) -> Any:
    """Decoded error payload, or a truncated text body."""
    try:
        return resp.json()
    except ValueError:
        return resp.text[:500]


class ApiClient:
    """Base class: holds the base URL, auth headers and optional transport."""

    service_name = "upstream"

    def __init__(
        self,
        base_url: str,
        headers: Dict[str, str],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            transport=self._transport,
            timeout=30.0,
        )

    def _upstream_message(self, body: Any, fallback: str) -> str:
        return fallback

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Issue one request and return the decoded JSON body.

        Parameters
        ----------
        error : str
            Message used when the call fails (the upstream's own message wins
            where the service provides one).
        """
        async with self._client() as client:
            resp = await client.request(method, path, params=params, json=json)
        return self._decode(resp, error)

    def _decode(self, resp: httpx.Response, error: str) -> Any:
        if resp.status_code >= 400:
            body = error_body(resp)
            logger.warning(
                "%s %s %s → %d: %s",
                self.service_name, resp.request.method, resp.request.url.path,
                resp.status_code, body,
            )
            raise UpstreamRequestError(
                self._upstream_message(body, error),
                status_code=resp.status_code,
                raw=body,
            )
        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            logger.error("%s returned a non-JSON body for %s", self.service_name, resp.request.url.path)
            raise UpstreamRequestError(
                f"{error}: malformed response body",
                status_code=502,
                raw=resp.text[:500],
            )
