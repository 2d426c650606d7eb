"""
Pure domain layer.

Data transfer objects, collaborator protocols and predicate logic with NO
dependencies on the ORM, the database or any collaborator implementation.
All domain values are immutable; RoundRobin is the one stateful cursor.
"""

from dam_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from dam_kernel.domain.filters import (
    all_of,
    exclude_subassets,
    has_outdated_renditions,
    is_valid_asset,
    matching,
    negate,
    negation,
    not_matching,
)
from dam_kernel.domain.freshness import (
    FreshnessVerdict,
    classify_renditions,
    is_outdated,
    outdated_renditions,
)
from dam_kernel.domain.protocols import (
    Asset,
    AssetInspector,
    ManagedSession,
    PathAction,
    PathFilter,
    Replicator,
    SessionAction,
    TransactionalSession,
    WorkflowRunner,
)
from dam_kernel.domain.round_robin import RoundRobin
from dam_kernel.domain.types import (
    ORIGINAL_RENDITION,
    WORKFLOW_USER_DATA,
    Rendition,
    ReplicationActionType,
    ReplicationOptions,
    RetryPolicy,
    WorkflowModel,
    rendition_path,
)

__all__ = [
    "Asset",
    "AssetInspector",
    "Clock",
    "DeterministicClock",
    "FreshnessVerdict",
    "ManagedSession",
    "ORIGINAL_RENDITION",
    "PathAction",
    "PathFilter",
    "Rendition",
    "ReplicationActionType",
    "ReplicationOptions",
    "Replicator",
    "RetryPolicy",
    "RoundRobin",
    "SessionAction",
    "SystemClock",
    "TransactionalSession",
    "WORKFLOW_USER_DATA",
    "WorkflowModel",
    "WorkflowRunner",
    "all_of",
    "classify_renditions",
    "exclude_subassets",
    "has_outdated_renditions",
    "is_outdated",
    "is_valid_asset",
    "matching",
    "negate",
    "negation",
    "not_matching",
    "outdated_renditions",
    "rendition_path",
]
