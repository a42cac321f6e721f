"""
Condy Access Core - Business Logic

This module provides the two components with real rules:
1. AccessRequestWorkflow (status graph, role scoping, notifications)
2. CondoIdentityResolver (local registry + external places index, deduplicated)

Collaborators (document store, places index, notifier) are injected at
construction time.
"""

from .models import (
    AccessRequest,
    AccessStatus,
    ActorRole,
    Condo,
    CondoCandidate,
    CondoStatus,
    GeoPoint,
    RequestType,
)
from .errors import (
    CondyError,
    DuplicateCondo,
    ExternalIndexDegraded,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
    UnknownCondo,
)

# Document store
from .store import (
    Condition,
    DocumentStore,
    InMemoryDocumentStore,
    Operator,
    SortSpec,
)

# Access workflow
from .access import (
    AccessPassService,
    AccessPassSigner,
    AccessReport,
    AccessRequestWorkflow,
    NewAccessRequest,
    generate_access_report,
)

# Condo resolution
from .condos import (
    CondoIdentityResolver,
    CondoRegistry,
    FilterType,
    ResolveOptions,
    SearchType,
)

__all__ = [
    # Models
    "AccessRequest",
    "AccessStatus",
    "ActorRole",
    "Condo",
    "CondoCandidate",
    "CondoStatus",
    "GeoPoint",
    "RequestType",
    # Errors
    "CondyError",
    "DuplicateCondo",
    "ExternalIndexDegraded",
    "InvalidRequest",
    "InvalidTransition",
    "NotFound",
    "PermissionDenied",
    "StoreUnavailable",
    "UnknownCondo",
    # Store
    "Condition",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Operator",
    "SortSpec",
    # Access
    "AccessPassService",
    "AccessPassSigner",
    "AccessReport",
    "AccessRequestWorkflow",
    "NewAccessRequest",
    "generate_access_report",
    # Condos
    "CondoIdentityResolver",
    "CondoRegistry",
    "FilterType",
    "ResolveOptions",
    "SearchType",
]
