"""
dam_kernel.domain.types -- Pure frozen dataclasses for asset actions.

ZERO I/O.  Every value here is immutable once constructed; configuration
values (retry policy, replication options, workflow models) are bound when an
action is built and never change afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from dam_kernel.exceptions import InvalidRetryPolicyError

# Name of the reference rendition every freshness check compares against.
ORIGINAL_RENDITION = "original"

# Folder below an asset node that holds its renditions.
RENDITIONS_FOLDER = "jcr:content/renditions"

# Session user data marking changes made by a synthetic workflow process.
WORKFLOW_USER_DATA = "changedByWorkflowProcess"


def rendition_path(asset_path: str, name: str) -> str:
    """Repository path of the rendition ``name`` of the asset at ``asset_path``."""
    return f"{asset_path.rstrip('/')}/{RENDITIONS_FOLDER}/{name}"


class ReplicationActionType(str, Enum):
    """Replication operation sent to the replication collaborator."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


@dataclass(frozen=True)
class Rendition:
    """One derived (or original) artifact of an asset."""

    name: str
    creation_time: datetime
    path: str = ""

    @property
    def is_original(self) -> bool:
        return self.name == ORIGINAL_RENDITION


@dataclass(frozen=True)
class ReplicationOptions:
    """Where and how to replicate.

    Opaque to the kernel; handed through to the replication collaborator.
    For large batch publishing ``synchronous=True`` is recommended.
    """

    synchronous: bool = False
    agent_ids: tuple[str, ...] = ()
    suppress_versions: bool = False
    suppress_status_update: bool = False


@dataclass(frozen=True)
class WorkflowModel:
    """Descriptor of a synthetic workflow model run by the workflow runner."""

    model_id: str
    title: str | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry budget.

    ``max_attempts`` counts total attempts (first try included);
    ``delay_seconds`` is slept between attempts, never after the last one.
    """

    max_attempts: int = 3
    delay_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1 or self.delay_seconds < 0:
            raise InvalidRetryPolicyError(self.max_attempts, self.delay_seconds)
