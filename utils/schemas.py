"""
Pydantic request schemas for the gateway's inbound endpoints.

Validation happens here, before any upstream call is made.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════════════


class TokenExchangeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    code_verifier: str = Field(..., min_length=1)


# ═══════════════════════════════════════════════════════════════════════════════
# ClickUp
# ═══════════════════════════════════════════════════════════════════════════════


class TaskStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class DueDateUpdate(BaseModel):
    due_date: int = Field(..., ge=0, description="Epoch milliseconds")


class CommentCreate(BaseModel):
    comment_text: str = Field(..., min_length=1)


class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[int] = Field(default=None, ge=0)
    assignees: Optional[List[int]] = None

    def to_payload(self) -> Dict[str, Any]:
        """ClickUp body: optional fields are only sent when set."""
        payload: Dict[str, Any] = {
            "name": self.name,
            "description": self.description or "",
        }
        if self.due_date:
            payload["due_date"] = self.due_date
        if self.assignees:
            payload["assignees"] = self.assignees
        return payload
