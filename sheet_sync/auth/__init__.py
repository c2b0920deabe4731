"""
Authentication module.
"""

from sheet_sync.auth.password import hash_password, verify_password
from sheet_sync.auth.session import SessionManager, SESSION_COOKIE_NAME

__all__ = [
    "hash_password",
    "verify_password",
    "SessionManager",
    "SESSION_COOKIE_NAME",
]
