"""Business logic services package with public service helpers."""

from .notification_service import NotificationService
from .security_code_service import SecurityCodeError, SecurityCodeService
from .worker_registration_service import WorkerConflict, WorkerService, WorkerValidationError
from .transfer_service import TransferError, TransferService
from .import_service import ImportFileError, ImportService
from .dashboard_service import DashboardService
from .farm_assignment_service import FarmAssignmentError

__all__ = [
    "NotificationService",
    "SecurityCodeError",
    "SecurityCodeService",
    "WorkerConflict",
    "WorkerService",
    "WorkerValidationError",
    "TransferError",
    "TransferService",
    "ImportFileError",
    "ImportService",
    "DashboardService",
    "FarmAssignmentError",
]
