"""
Gateway error taxonomy.

Clients raise these; ``api.errors`` turns them into the JSON failure body
``{"success": false, "error": ..., ...}`` with the matching HTTP status.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base for every error the handlers know how to render."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra: Dict[str, Any] = dict(extra or {})

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        body.update(self.extra)
        return body


class UpstreamAuthError(GatewayError):
    """The identity provider rejected a code exchange or refresh."""

    status_code = 401

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["reauth_required"] = True
        return body


class ReauthRequired(UpstreamAuthError):
    """No usable session or token; the user has to sign in again."""


class UpstreamRequestError(GatewayError):
    """Non-2xx (or undecodable) response from ClickUp or Graph."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        raw: Any = None,
    ) -> None:
        status = status_code if status_code and status_code >= 400 else 500
        super().__init__(message, status_code=status, extra={"status": status, "raw": raw})
        self.raw = raw


class NotFoundError(GatewayError):
    """A lookup came back empty (no teams, no statuses, no file...)."""

    status_code = 404


class NoClosedStatusFound(NotFoundError):
    def __init__(self, list_id: str) -> None:
        super().__init__(
            "Closed status not found for this list.",
            extra={"list_id": list_id},
        )


class NoOpenStatusFound(NotFoundError):
    def __init__(self, list_id: str) -> None:
        super().__init__(
            "No open status found for this list.",
            extra={"list_id": list_id},
        )


class FileNotFoundInDrive(NotFoundError):
    def __init__(self, filename: str) -> None:
        super().__init__(
            f"File '{filename}' was not found in OneDrive or shared items",
            extra={"filename": filename},
        )


class InputValidationError(GatewayError):
    """Missing or malformed request input, caught before any upstream call."""

    status_code = 422
