"""
Identity resolution for requests authenticated by the reverse proxy.

The proxy forwards the signed-in account as `X-Auth-Request-*` (or
`X-Forwarded-*`) headers. Accounts are created on first sight with the
`user` role and no farm; emails listed in `ADMIN_EMAILS` become superadmins.
"""
import logging
import os
from typing import Optional, Set, Tuple
from sqlalchemy.orm import Session

from housing.db import models
from housing.db.repositories import users as user_repo
from housing.utils.role_permissions import ROLE_SUPERADMIN, ROLE_USER

logger = logging.getLogger(__name__)


def _normalize_email(email: Optional[str]) -> Optional[str]:
    cleaned = (email or "").strip().lower()
    return cleaned or None


def superadmin_emails() -> Set[str]:
    """`ADMIN_EMAILS` as a set; entries may be quoted."""
    entries = (e.strip().strip('"').strip("'") for e in os.getenv("ADMIN_EMAILS", "").split(","))
    return {e.lower() for e in entries if e}


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Return (display name, email); `X-Auth-Request-*` wins over `X-Forwarded-*`."""
    name = x_auth_request_user or x_forwarded_user
    return name, _normalize_email(x_auth_request_email or x_forwarded_email)


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    should_be_superadmin = email in superadmin_emails()
    user = user_repo.get_user_by_email(db, email)

    if user is None:
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            role=ROLE_SUPERADMIN if should_be_superadmin else ROLE_USER,
            farm_id=None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Registered %s as %s", email, user.role)
    elif should_be_superadmin and user.role != ROLE_SUPERADMIN:
        # ADMIN_EMAILS may have been extended after the account was created
        user.role = ROLE_SUPERADMIN
        db.commit()
        db.refresh(user)
        logger.info("Promoted %s to superadmin from ADMIN_EMAILS", email)
    return user
