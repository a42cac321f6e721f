"""
Access request workflow: status graph, role scoping, notifications,
gate passes and reports.
"""

from core.access.transitions import (
    ALLOWED_TRANSITIONS,
    INITIAL_STATUS,
    TERMINAL_STATUSES,
    allowed_next,
    can_transition,
    is_terminal,
    is_valid_walk,
    validate_transition,
)
from core.access.notifications import (
    Notification,
    Notifier,
    LoggingNotifier,
    ExpoPushNotifier,
    build_creation_notifications,
    build_status_notifications,
    dispatch_best_effort,
)
from core.access.workflow import (
    AccessRequestWorkflow,
    AccessRequestDetails,
    NewAccessRequest,
    REQUESTS_COLLECTION,
    CONDOS_COLLECTION,
    DRIVERS_COLLECTION,
    RESIDENTS_COLLECTION,
)
from core.access.passes import (
    AccessPass,
    AccessPassSigner,
    AccessPassService,
    PassValidationResult,
    PassValidationSuccess,
    PassValidationFailure,
    DEFAULT_VALIDITY_MINUTES,
)
from core.access.report import (
    AccessReport,
    build_access_report,
    generate_access_report,
)

__all__ = [
    # Status graph
    "ALLOWED_TRANSITIONS",
    "INITIAL_STATUS",
    "TERMINAL_STATUSES",
    "allowed_next",
    "can_transition",
    "is_terminal",
    "is_valid_walk",
    "validate_transition",
    # Notifications
    "Notification",
    "Notifier",
    "LoggingNotifier",
    "ExpoPushNotifier",
    "build_creation_notifications",
    "build_status_notifications",
    "dispatch_best_effort",
    # Workflow
    "AccessRequestWorkflow",
    "AccessRequestDetails",
    "NewAccessRequest",
    "REQUESTS_COLLECTION",
    "CONDOS_COLLECTION",
    "DRIVERS_COLLECTION",
    "RESIDENTS_COLLECTION",
    # Gate passes
    "AccessPass",
    "AccessPassSigner",
    "AccessPassService",
    "PassValidationResult",
    "PassValidationSuccess",
    "PassValidationFailure",
    "DEFAULT_VALIDITY_MINUTES",
    # Reports
    "AccessReport",
    "build_access_report",
    "generate_access_report",
]
