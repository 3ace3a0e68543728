"""In-process session registry.

Tokens live until logout, invalidation by the authorization gate, or a
process restart. Nothing is persisted and there is no expiry timer, so
sessions are not shared between server instances.
"""

import secrets
import time
from threading import Lock

from fastapi import Request
from pydantic import BaseModel, ConfigDict

TOKEN_PREFIX = 'session_'


class CallerContext(BaseModel):
    """Identity snapshot taken at login and handed to every protected handler."""

    id: int
    username: str
    email: str
    role: str
    full_name: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


def _to_base36(value: int) -> str:
    digits = '0123456789abcdefghijklmnopqrstuvwxyz'
    encoded = ''
    while value:
        value, remainder = divmod(value, 36)
        encoded = digits[remainder] + encoded
    return encoded or '0'


def generate_token() -> str:
    return f'{TOKEN_PREFIX}{secrets.token_urlsafe(24)}{_to_base36(time.time_ns())}'


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, CallerContext] = {}
        self._lock = Lock()

    def create(self, snapshot: CallerContext) -> str:
        with self._lock:
            token = generate_token()
            while token in self._sessions:
                token = generate_token()
            self._sessions[token] = snapshot
        return token

    def lookup(self, token: str) -> CallerContext | None:
        with self._lock:
            return self._sessions.get(token)

    def invalidate(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry
