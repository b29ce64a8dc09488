"""Shared dependencies for API endpoints."""
from typing import Optional

from fastapi import Depends, Header, HTTPException

from app.core.settings import settings
from app.domain.value_objects.roles import Actor, Role


async def verify_admin_key(x_admin_key: str = Header(..., alias="X-Admin-Key")):
    """Verify admin key for protected endpoints.

    Args:
        x_admin_key: Admin key from X-Admin-Key header

    Raises:
        HTTPException: 403 if admin key is invalid

    Returns:
        bool: True if key is valid
    """
    expected_key = settings.ADMIN_KEY

    if not expected_key:
        raise HTTPException(
            status_code=500,
            detail="Admin key not configured on server"
        )

    if x_admin_key != expected_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid admin key"
        )

    return True


async def verify_internal_key(x_internal_key: str = Header(..., alias="X-Internal-Key")):
    """Verify the shared key used by sibling services posting events."""
    expected_key = settings.INTERNAL_EVENTS_KEY

    if not expected_key:
        raise HTTPException(status_code=500, detail="Internal events key not configured on server")

    if x_internal_key != expected_key:
        raise HTTPException(status_code=403, detail="Invalid internal key")

    return True


def _parse_role(raw: Optional[str]) -> Role:
    if not raw:
        return Role.USER
    try:
        return Role(raw.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {raw}")


async def get_optional_actor(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Optional[Actor]:
    """Caller identity as forwarded by the API gateway, if any."""
    if not x_user_id:
        return None
    return Actor(user_id=x_user_id, role=_parse_role(x_user_role))


async def get_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    """Caller identity; 401 when the request is anonymous."""
    if actor is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor


async def get_admin_actor(
    _: bool = Depends(verify_admin_key),
    x_admin_id: Optional[str] = Header(None, alias="X-Admin-Id"),
) -> Actor:
    """Actor for admin-key requests, recorded as the editor in audit fields."""
    return Actor(user_id=x_admin_id or "admin", role=Role.ADMIN)
