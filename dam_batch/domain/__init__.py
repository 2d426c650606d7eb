"""
dam_batch.domain -- Pure result types for batch runs.

ZERO I/O.  All types are frozen dataclasses.
"""

from dam_batch.domain.types import ActionRunResult, ItemResult, ItemStatus, RunStatus

__all__ = [
    "ActionRunResult",
    "ItemResult",
    "ItemStatus",
    "RunStatus",
]
