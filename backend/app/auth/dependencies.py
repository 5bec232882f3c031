"""FastAPI dependencies for authentication."""

from fastapi import HTTPException, Request, status
from pydantic import BaseModel

from .config import get_auth_settings


class CurrentUser(BaseModel):
    """
    Represents the authenticated user.

    Attributes:
        user_id: The principal ID forwarded by the authentication gateway.
        name: The user's display name if the gateway forwards it.
    """

    user_id: str
    name: str | None = None


async def get_current_user(request: Request) -> CurrentUser:
    """
    FastAPI dependency that returns the current user.

    With AUTH_ENABLED (the default) the user ID comes from the principal header
    set by the authentication gateway. For local development set
    AUTH_ENABLED=false and provide an X-User-Id header instead.

    Raises:
        HTTPException: 401 if the expected header is missing or empty.
    """
    settings = get_auth_settings()
    header = settings.user_header
    user_id = (request.headers.get(header) or "").strip()

    if not user_id:
        if settings.enabled:
            detail = "Missing authenticated principal"
        else:
            detail = f"Authentication disabled but no {header} header provided"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not settings.enabled:
        return CurrentUser(user_id=user_id, name="Local Dev User")

    return CurrentUser(user_id=user_id, name=request.headers.get("X-MS-CLIENT-PRINCIPAL-NAME"))
