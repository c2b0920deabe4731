"""
Cookie-based session management.
"""

from datetime import datetime
from typing import Optional

from fastapi import Response
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from starlette.requests import HTTPConnection


# Session duration: 24 hours
SESSION_MAX_AGE = 24 * 60 * 60  # seconds
SESSION_COOKIE_NAME = "sheet_sync_session"


class SessionManager:
    """
    Signed cookie sessions for the single admin user.

    Works for both plain requests and WebSocket handshakes, which carry the
    same cookie.
    """

    def __init__(self, secret_key: str, secure_cookies: bool = False):
        self._serializer = URLSafeTimedSerializer(secret_key, salt="sheet-sync-session")
        self._secure_cookies = secure_cookies

    def create_session(self, response: Response, user_id: str = "admin") -> None:
        """Sign a new session and attach it to the response."""
        token = self._serializer.dumps({
            "user_id": user_id,
            "created_at": datetime.utcnow().isoformat(),
        })

        response.set_cookie(
            key=SESSION_COOKIE_NAME,
            value=token,
            max_age=SESSION_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=self._secure_cookies,
        )

    def get_session(self, connection: HTTPConnection) -> Optional[dict]:
        """
        Read the session from a request or WebSocket.

        Returns:
            Session data, or None if missing, tampered with or expired
        """
        token = connection.cookies.get(SESSION_COOKIE_NAME)
        if not token:
            return None

        try:
            return self._serializer.loads(token, max_age=SESSION_MAX_AGE)
        except (BadSignature, SignatureExpired):
            return None

    def clear_session(self, response: Response) -> None:
        response.delete_cookie(
            key=SESSION_COOKIE_NAME,
            httponly=True,
            samesite="lax",
        )

    def is_authenticated(self, connection: HTTPConnection) -> bool:
        return self.get_session(connection) is not None
