"""Authentication module (principal forwarded by the platform gateway)."""

from .config import get_auth_settings, AuthSettings
from .dependencies import get_current_user, CurrentUser

__all__ = [
    "get_auth_settings",
    "AuthSettings",
    "get_current_user",
    "CurrentUser",
]
