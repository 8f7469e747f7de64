"""Runtime environment helpers for the development identity shortcut."""

import os
from urllib.parse import urlparse
from typing import Optional, Set

DEV_USER_EMAIL = "dev@localhost"
_LOCAL_HOSTS: Set[str] = {"localhost", "127.0.0.1", "::1"}


def _hostname_of(value: str) -> Optional[str]:
    """Hostname of a URL; bare hosts are accepted too."""
    value = (value or "").strip()
    if not value:
        return None
    if "://" not in value:
        value = f"http://{value}"
    return urlparse(value).hostname


def _dev_hosts() -> Set[str]:
    hosts = set(_LOCAL_HOSTS)
    for host in os.getenv("DEV_MODE_ALLOWED_HOSTS", "").split(","):
        if host.strip():
            hosts.add(host.strip().lower())
    return hosts


def dev_mode_requested() -> bool:
    return os.getenv("DEV_MODE", "false").lower() == "true"


def dev_mode_active() -> bool:
    """Whether requests should run as the local dev user.

    DEV_MODE is refused (RuntimeError) when APP_BASE_URL names a host outside
    localhost and DEV_MODE_ALLOWED_HOSTS. Without APP_BASE_URL it also needs
    ALLOW_DEV_MODE=true, except while pytest is running a test.
    """
    if not dev_mode_requested():
        return False

    hostname = _hostname_of(os.getenv("APP_BASE_URL", ""))
    if hostname is None:
        if os.getenv("ALLOW_DEV_MODE", "false").lower() != "true" and not os.getenv("PYTEST_CURRENT_TEST"):
            raise RuntimeError(
                "DEV_MODE=true requires APP_BASE_URL to point at a local host "
                "or ALLOW_DEV_MODE=true."
            )
        return True

    allowed = _dev_hosts()
    if hostname.lower() not in allowed:
        raise RuntimeError(
            f"DEV_MODE=true is not permitted for APP_BASE_URL host '{hostname}'. "
            f"Allowed hosts: {sorted(allowed)}"
        )
    return True
