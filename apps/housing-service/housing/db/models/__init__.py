"""
Domain-split SQLAlchemy models.

Re-exports `Base`, the time helpers and every ORM class so callers can
`from housing.db import models` and use `models.Worker` etc.
"""

from .base import Base, now_utc, today_utc  # re-export

from .users import User
from .farms import Farm, Room
from .workers import Worker
from .catalog import Supervisor, StockItem, ArticleName
from .transfers import WorkerTransfer, StockTransfer
from .notifications import Notification
from .security import SecurityCode, SecurityCodeUsage
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    "today_utc",
    # users/farms
    "User",
    "Farm",
    "Room",
    # workers
    "Worker",
    "WorkerTransfer",
    # catalog
    "Supervisor",
    "StockItem",
    "ArticleName",
    "StockTransfer",
    # notifications
    "Notification",
    # security/audit
    "SecurityCode",
    "SecurityCodeUsage",
    "AuditLog",
]
