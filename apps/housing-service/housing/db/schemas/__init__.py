"""
Domain-split Pydantic schemas.

Re-exports every request/response model so callers can use
`schemas.Worker`, `schemas.FarmCreate`, etc.
"""

from .users import UserBase, User, UserRoleUpdate, UserFarmUpdate, UserProfileUpdate
from .farms import FarmBase, FarmCreate, FarmUpdate, Farm, RoomBase, RoomCreate, RoomUpdate, Room
from .workers import (
    WorkHistoryPeriod,
    AllocatedItem,
    WorkerBase,
    WorkerCreate,
    WorkerUpdate,
    Worker,
    DuplicateCheckRequest,
    DuplicateCheckResult,
    BulkDeleteRequest,
    BulkDeleteResult,
)
from .catalog import (
    SupervisorBase,
    SupervisorCreate,
    SupervisorUpdate,
    Supervisor,
    StockItemBase,
    StockItemCreate,
    StockItemUpdate,
    StockItem,
    ArticleNameBase,
    ArticleNameCreate,
    ArticleNameUpdate,
    ArticleName,
)
from .transfers import (
    TransferWorkerEntry,
    RoomAssignment,
    WorkerTransferCreate,
    TransferConfirmRequest,
    TransferRejectRequest,
    WorkerTransfer,
    StockTransferCreate,
    StockTransfer,
)
from .notifications import (
    NotificationBase,
    NotificationCreate,
    Notification,
    NotificationListResponse,
    AnnouncementCreate,
    AnnouncementResult,
)
from .security import SecurityCodeCreate, SecurityCodeShare, SecurityCode
from .audits import AuditLogBase, AuditLogCreate, AuditLog
from .imports import (
    ImportedWorker,
    ImportRowResult,
    ImportSummary,
    ImportPreview,
    ImportCommitRequest,
    ImportCommitResult,
)
from .stats import FarmStats, CompanyStats, AdminStats, OccupancySyncResult

__all__ = [
    # users
    "UserBase", "User", "UserRoleUpdate", "UserFarmUpdate", "UserProfileUpdate",
    # farms/rooms
    "FarmBase", "FarmCreate", "FarmUpdate", "Farm",
    "RoomBase", "RoomCreate", "RoomUpdate", "Room",
    # workers
    "WorkHistoryPeriod", "AllocatedItem", "WorkerBase", "WorkerCreate", "WorkerUpdate", "Worker",
    "DuplicateCheckRequest", "DuplicateCheckResult", "BulkDeleteRequest", "BulkDeleteResult",
    # catalog
    "SupervisorBase", "SupervisorCreate", "SupervisorUpdate", "Supervisor",
    "StockItemBase", "StockItemCreate", "StockItemUpdate", "StockItem",
    "ArticleNameBase", "ArticleNameCreate", "ArticleNameUpdate", "ArticleName",
    # transfers
    "TransferWorkerEntry", "RoomAssignment", "WorkerTransferCreate",
    "TransferConfirmRequest", "TransferRejectRequest", "WorkerTransfer",
    "StockTransferCreate", "StockTransfer",
    # notifications
    "NotificationBase", "NotificationCreate", "Notification", "NotificationListResponse",
    "AnnouncementCreate", "AnnouncementResult",
    # security/audit
    "SecurityCodeCreate", "SecurityCodeShare", "SecurityCode",
    "AuditLogBase", "AuditLogCreate", "AuditLog",
    # imports
    "ImportedWorker", "ImportRowResult", "ImportSummary", "ImportPreview",
    "ImportCommitRequest", "ImportCommitResult",
    # stats
    "FarmStats", "CompanyStats", "AdminStats", "OccupancySyncResult",
]
