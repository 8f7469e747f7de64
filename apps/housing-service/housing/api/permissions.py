"""
Farm scoping checks for resource access control.

Key helpers:
- can_access_farm(farm_id, current_user)
- ensure_farm_access(farm_id, current_user)
- resolve_farm_scope(requested_farm_id, current_user)
- require_superadmin(current_user)
"""
import uuid
from typing import Optional, Dict, Any

from fastapi import HTTPException, status

from housing.utils.role_permissions import role_sees_all_farms


def can_access_farm(farm_id, current_user: Optional[Dict[str, Any]]) -> bool:
    if current_user is None or farm_id is None:
        return False
    if role_sees_all_farms(current_user.get("role")):
        return True
    own = current_user.get("farm_id")
    return own is not None and str(own) == str(farm_id)


def ensure_farm_access(farm_id, current_user: Optional[Dict[str, Any]]) -> None:
    if not can_access_farm(farm_id, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this farm is not allowed")


def require_superadmin(current_user: Optional[Dict[str, Any]]) -> None:
    if not current_user or not current_user.get("is_superadmin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")


def resolve_farm_scope(requested_farm_id: Optional[uuid.UUID], current_user: Dict[str, Any]) -> Optional[uuid.UUID]:
    """
    Farm a list/read request is limited to.

    Superadmins get what they asked for (None meaning every farm); everyone
    else is pinned to their own farm and cannot ask for another one.
    """
    if role_sees_all_farms(current_user.get("role")):
        return requested_farm_id
    own = current_user.get("farm_id")
    if own is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No farm assigned to this user")
    if requested_farm_id is not None and str(requested_farm_id) != str(own):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this farm is not allowed")
    return own


def require_farm_for_write(requested_farm_id: Optional[uuid.UUID], current_user: Dict[str, Any]) -> uuid.UUID:
    """Farm a create request targets; superadmins must name one explicitly when they have none."""
    farm_id = resolve_farm_scope(requested_farm_id, current_user)
    if farm_id is None:
        farm_id = current_user.get("farm_id")
    if farm_id is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="farm_id is required")
    return farm_id
