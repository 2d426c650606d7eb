"""
dam_batch -- Deferred asset actions and a reference batch host.

Composes the kernel primitives (filters, retry, round robin, freshness)
with injected collaborators (asset inspector, replicator, workflow runner)
into the ``DeferredActions`` catalog, and runs them per item with
``ActionRunner``.

Architecture:
    dam_batch/ is a top-level package.  Nothing in dam_kernel/ or
    dam_config/ imports from dam_batch.
"""

from dam_batch.actions.catalog import Collaborators, DeferredActions
from dam_batch.domain.types import ActionRunResult, ItemResult, ItemStatus, RunStatus
from dam_batch.services.runner import ActionRunner

__all__ = [
    "ActionRunResult",
    "ActionRunner",
    "Collaborators",
    "DeferredActions",
    "ItemResult",
    "ItemStatus",
    "RunStatus",
]
