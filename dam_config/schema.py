"""
Action settings schema.

Defines the human-authored, reviewable settings for deferred asset actions.
YAML documents are parsed into these types by the loader; the catalog and
the batch host consume them.  No executable logic lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dam_kernel.domain.types import ReplicationOptions, RetryPolicy, WorkflowModel


@dataclass(frozen=True)
class RunnerSettings:
    """Batch host settings."""

    max_workers: int = 4
    commit_after_each_item: bool = True


@dataclass(frozen=True)
class ActionSettings:
    """Complete settings set for one deployment."""

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    replication_targets: tuple[ReplicationOptions, ...] = ()
    workflow_models: dict[str, WorkflowModel] = field(default_factory=dict)
    runner: RunnerSettings = field(default_factory=RunnerSettings)

    def workflow_model(self, key: str) -> WorkflowModel:
        """Look up a configured workflow model by key.

        Raises:
            KeyError: if ``key`` is not configured.
        """
        try:
            return self.workflow_models[key]
        except KeyError:
            raise KeyError(
                f"Workflow model '{key}' is not configured "
                f"(known: {sorted(self.workflow_models)})"
            ) from None
