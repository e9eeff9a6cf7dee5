"""
Server-side session storage for the signed-in principal.

The signed session cookie (Starlette ``SessionMiddleware``) only carries an
opaque ``sid``. The principal, with its encrypted tokens, lives in the
key-value store under ``session:{sid}`` so Microsoft tokens never have to fit
in a cookie.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Request
from pydantic import ValidationError

from auth.models import SessionPrincipal
from config.settings import config
from core.cache import KeyValueStore

logger = logging.getLogger(__name__)

_SID_KEY = "sid"


def _session_key(sid: str) -> str:
    return f"session:{sid}"


class SessionManager:
    def __init__(self, store: KeyValueStore, lifetime_seconds: Optional[int] = None) -> None:
        self.store = store
        self.lifetime = lifetime_seconds or config.session_lifetime_seconds

    def load(self, request: Request) -> Optional[SessionPrincipal]:
        sid = request.session.get(_SID_KEY)
        if not sid:
            return None
        data = self.store.get(_session_key(sid))
        if data is None:
            return None
        try:
            return SessionPrincipal.model_validate(data)
        except ValidationError:
            logger.warning("Discarding malformed session %s", sid)
            self.store.forget(_session_key(sid))
            return None

    def save(self, request: Request, principal: SessionPrincipal) -> None:
        sid = request.session.get(_SID_KEY)
        if not sid:
            sid = uuid.uuid4().hex
            request.session[_SID_KEY] = sid
        self.store.put(_session_key(sid), principal.model_dump(), ttl=self.lifetime)

    def clear(self, request: Request) -> None:
        sid = request.session.pop(_SID_KEY, None)
        if sid:
            self.store.forget(_session_key(sid))
        request.session.clear()
