"""
API dependency helpers.

Provides the dependency-resolved user context used by every route.
"""
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.api.auth import resolve_identity_from_headers, get_or_create_user
from housing.db import models
from housing.utils.role_permissions import role_can_administer
from housing.utils.runtime import DEV_USER_EMAIL, dev_mode_active

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.


def build_user_context(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "role": user.role,
        "farm_id": user.farm_id,
        "is_superadmin": user.is_superadmin,
    }


def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    if dev_mode_active():
        email = DEV_USER_EMAIL
        name = "Development User"
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)
    return user, build_user_context(user)


def get_superadmin_context(
    user_context=Depends(get_current_user_context),
) -> Tuple[models.User, Dict[str, Any]]:
    """Same as get_current_user_context but 403 for anyone but a superadmin."""
    user, current_user = user_context
    if not role_can_administer(current_user.get("role")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")
    return user, current_user
