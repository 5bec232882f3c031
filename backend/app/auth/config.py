"""Authentication configuration.

Tokens are validated by the platform in front of the API (Azure Container Apps
authentication), which forwards the verified principal ID in a request header.
"""

import os
from functools import lru_cache
from pydantic import BaseModel

DEFAULT_PRINCIPAL_HEADER = "X-MS-CLIENT-PRINCIPAL-ID"
DEV_USER_HEADER = "X-User-Id"


class AuthSettings(BaseModel):
    """Authentication settings loaded from environment variables."""

    principal_header: str = DEFAULT_PRINCIPAL_HEADER
    enabled: bool = True  # Set to False to accept the X-User-Id header (local dev)

    @property
    def user_header(self) -> str:
        """Header the current user ID is read from."""
        return self.principal_header if self.enabled else DEV_USER_HEADER


@lru_cache()
def get_auth_settings() -> AuthSettings:
    """Get cached authentication settings from environment variables."""
    enabled_str = os.getenv("AUTH_ENABLED", "true").lower()
    enabled = enabled_str not in ("false", "0", "no", "off")

    return AuthSettings(
        principal_header=os.getenv("AUTH_PRINCIPAL_HEADER", DEFAULT_PRINCIPAL_HEADER),
        enabled=enabled,
    )
