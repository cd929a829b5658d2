# src/repairdesk/auth.py
"""Role login and session middleware for RepairDesk."""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional
import hashlib
import hmac
import logging
import secrets

from .config import AuthConfig
from .core.models import UserRole

logger = logging.getLogger(__name__)

SESSION_COOKIE = "repairdesk_session"

# Routes that don't need a session
PUBLIC_ROUTES = [
    "/auth/login",
    "/auth/logout",
    "/health",
    "/api/external",
]


def hash_password(password: str, secret_key: str) -> str:
    """Hash password with salt."""
    return hashlib.sha256(f"{secret_key}{password}".encode()).hexdigest()


@dataclass
class Session:
    role: UserRole
    created: datetime
    last_active: datetime
    user_agent: str = ""


class SessionStore:
    """In-memory sessions; a restart logs everyone out."""

    def __init__(self, config: AuthConfig):
        self._config = config
        self._sessions: Dict[str, Session] = {}

    def check_credentials(self, role: UserRole, password: Optional[str]) -> bool:
        """Admin needs the shared password; Attachee needs none."""
        if role is UserRole.ATTACHEE:
            return True
        expected = hash_password(self._config.admin_password, self._config.secret_key)
        provided = hash_password(password or "", self._config.secret_key)
        return hmac.compare_digest(expected, provided)

    def create_session(self, role: UserRole, user_agent: str = "") -> str:
        """Create a new session and return token."""
        token = secrets.token_urlsafe(32)
        now = datetime.now()
        self._sessions[token] = Session(role=role, created=now, last_active=now, user_agent=user_agent)
        logger.info(f"🔑 {role.value} session started")
        return token

    def validate_session(self, token: Optional[str]) -> Optional[Session]:
        """Get the live session for a token, or None if missing or expired."""
        if not token or token not in self._sessions:
            return None

        session = self._sessions[token]
        expiry = session.created + timedelta(hours=self._config.session_duration_hours)
        if datetime.now() > expiry:
            del self._sessions[token]
            return None

        session.last_active = datetime.now()
        return session

    def destroy_session(self, token: Optional[str]) -> None:
        """Logout - destroy session."""
        if token and token in self._sessions:
            del self._sessions[token]


class AuthMiddleware(BaseHTTPMiddleware):
    """Require a session on /api routes, except the public lookup."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        for route in PUBLIC_ROUTES:
            if path.startswith(route):
                return await call_next(request)

        if not path.startswith("/api/"):
            return await call_next(request)

        sessions: Optional[SessionStore] = getattr(request.app.state, "sessions", None)
        token = request.cookies.get(SESSION_COOKIE)
        session = sessions.validate_session(token) if sessions else None
        if session is None:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        request.state.session_token = token
        request.state.role = session.role
        return await call_next(request)
