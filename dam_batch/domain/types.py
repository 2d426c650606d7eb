"""
dam_batch.domain.types -- Pure frozen dataclasses for batch runs.

ZERO I/O.  Results are immutable snapshots produced by ``ActionRunner``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class RunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # No item failed (skips allowed)
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed
    FAILED = "failed"  # Items failed and none succeeded


class ItemStatus(str, Enum):
    """Per-item outcome."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Rejected by the run's filter


@dataclass(frozen=True)
class ItemResult:
    """Immutable result of processing one item path."""

    item_index: int  # 0-indexed position in the submitted paths
    item_key: str  # Item path (or label for single-session actions)
    status: ItemStatus
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class ActionRunResult:
    """Immutable result of running one action over a set of paths."""

    job_id: UUID
    status: RunStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[ItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    correlation_id: str | None = None

    @property
    def failed_items(self) -> tuple[ItemResult, ...]:
        return tuple(
            r for r in self.item_results if r.status is ItemStatus.FAILED
        )
