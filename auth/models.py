"""Session principal — the signed-in Microsoft user as kept server-side."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class SessionPrincipal(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    provider_email: str = ""
    provider_graph_id: str = ""
    encrypted_access_token: str
    encrypted_refresh_token: str = ""
    token_expiry: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def public_view(self) -> dict:
        """Fields safe to hand back to the browser."""
        return {"id": self.id, "name": self.name, "email": self.email}


__all__ = ["SessionPrincipal"]
