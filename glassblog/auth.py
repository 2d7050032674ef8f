import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from fastapi import HTTPException, Header, Request

from .errors import AuthError

logger = logging.getLogger(__name__)


class SessionStore:
    """Admin sign-in sessions keyed by bearer token."""

    def __init__(self, username: str, password: str, ttl: int = 12 * 3600):
        self.username = username
        self.password = password
        self.ttl = timedelta(seconds=ttl)
        self._sessions: Dict[str, dict] = {}

    def verify_credentials(self, username: str, password: str) -> bool:
        return (secrets.compare_digest(username.encode(), self.username.encode())
                and secrets.compare_digest(password.encode(), self.password.encode()))

    def sign_in(self, username: str, password: str) -> str:
        if not self.verify_credentials(username, password):
            logger.warning("Rejected sign-in for %r", username)
            raise AuthError("Invalid credentials. Please try again.")
        self._expire()
        token = secrets.token_urlsafe(32)
        now = datetime.utcnow()
        self._sessions[token] = {"user": username, "signed_in_at": now, "expires_at": now + self.ttl}
        logger.info("Admin %s signed in", username)
        return token

    def get_session(self, token: Optional[str]) -> Optional[dict]:
        self._expire()
        if not token:
            return None
        return self._sessions.get(token)

    def _expire(self) -> None:
        now = datetime.utcnow()
        for token in [t for t, s in self._sessions.items() if s["expires_at"] <= now]:
            del self._sessions[token]

    def sign_out(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="No token")
    return authorization.split(" ", 1)[1].strip()


def verify_token(request: Request, Authorization: Optional[str] = Header(None)):
    token = bearer_token(Authorization)
    session = request.app.state.sessions.get_session(token)
    if session is None:
        raise HTTPException(status_code=403, detail="Bad token")
    return {**session, "token": token}
