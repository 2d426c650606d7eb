"""
DeferredActions -- ready-made filters and actions for batch hosts.

Contract:
    Every method returns a closure for a batch host to invoke once per item
    (``(session, path)``) or once per session (``(session)``).  Closures are
    built from the kernel primitives plus one collaborator call each.

Architecture: dam_batch/actions.  Imports from dam_kernel and dam_config.

Diagnostics:
    Each closure binds a ``task_label`` (e.g. ``activate-<path>``) in the
    log context for the duration of one invocation.  Labels have no
    behavioral effect.

Failure modes:
    - Collaborator errors propagate unmodified; only closures wrapped with
      ``retry`` / ``retry_all`` are re-attempted.
    - AssetNotFoundError for rendition actions on paths that are not assets.
    - EmptyDistributionError for round-robin actions with no targets.

Usage:
    actions = DeferredActions(Collaborators(inspector, replicator, runner))
    publish = actions.retry_all(actions.activate_all_with_round_robin(a, b))
    host.run(paths, publish, item_filter=actions.filter_out_subassets())
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

from dam_config.schema import ActionSettings
from dam_kernel.domain import filters
from dam_kernel.domain.protocols import (
    Asset,
    AssetInspector,
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
    ReplicationActionType,
    ReplicationOptions,
    RetryPolicy,
    WorkflowModel,
)
from dam_kernel.exceptions import AssetNotFoundError, EmptyDistributionError
from dam_kernel.logging_config import get_logger, task_scope
from dam_kernel.services.retry import TransientPredicate, always_transient
from dam_kernel.services.retry import retry as _retry
from dam_kernel.services.retry import retry_all as _retry_all

logger = get_logger("batch.catalog")


@dataclass(frozen=True)
class Collaborators:
    """External systems the catalog delegates to."""

    inspector: AssetInspector
    replicator: Replicator
    workflow_runner: WorkflowRunner


class DeferredActions:
    """Catalog of deferred actions over repository items."""

    #: Returns the opposite of its input.
    not_ = staticmethod(filters.negate)

    def __init__(
        self,
        collaborators: Collaborators,
        settings: ActionSettings | None = None,
    ):
        self._inspector = collaborators.inspector
        self._replicator = collaborators.replicator
        self._workflow_runner = collaborators.workflow_runner
        self._settings = settings or ActionSettings()

    @property
    def settings(self) -> ActionSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def filter_matching(self, pattern: str) -> PathFilter:
        """True if the regular expression matches the whole path."""
        return filters.matching(pattern)

    def filter_not_matching(self, pattern: str) -> PathFilter:
        """False if the regular expression matches the whole path."""
        return filters.not_matching(pattern)

    def filter_out_subassets(self) -> PathFilter:
        """True if the path is not a subasset."""
        return filters.exclude_subassets()

    def filter_non_assets(self) -> PathFilter:
        """True if the path resolves to an asset.

        Prefer narrowing in the candidate query when possible.
        """
        return filters.is_valid_asset(self._inspector)

    def filter_assets_with_outdated_renditions(self) -> PathFilter:
        """True if the asset has no derived renditions, or outdated ones."""
        return filters.has_outdated_renditions(self._inspector)

    # -------------------------------------------------------------------------
    # Per-path actions
    # -------------------------------------------------------------------------

    def retry_all(
        self,
        action: PathAction,
        policy: RetryPolicy | None = None,
        is_transient: TransientPredicate = always_transient,
    ) -> PathAction:
        """Retry ``action`` per path; the session is reverted between attempts.

        Uses the configured retry policy when ``policy`` is None.  Actions
        wrapped this way should commit their own work.
        """
        return _retry_all(
            policy or self._settings.retry_policy, action, is_transient=is_transient,
        )

    def start_synthetic_workflows(self, model: WorkflowModel | str) -> PathAction:
        """Run each path through a synthetic workflow.

        ``model`` may be a configured workflow model key.
        """
        if isinstance(model, str):
            model = self._settings.workflow_model(model)

        def _start(session: TransactionalSession, path: str) -> None:
            session.set_user_data(WORKFLOW_USER_DATA)
            with task_scope("synWf", path):
                logger.info(
                    "synthetic_workflow_started",
                    extra={"path": path, "model_id": model.model_id},
                )
                self._workflow_runner.execute(session, path, model, False, False)

        return _start

    def with_all_renditions(
        self,
        action: PathAction,
        *rendition_filters: PathFilter,
    ) -> PathAction:
        """Invoke ``action`` on the asset path once per rendition passing all filters.

        Filters see the rendition's own path and stop at the first False.
        """
        accept = filters.all_of(*rendition_filters)

        def _each_rendition(session: TransactionalSession, path: str) -> None:
            with task_scope("withAllRenditions", path):
                asset = self._require_asset(session, path)
                for rendition in asset.renditions():
                    if accept(session, rendition.path):
                        action(session, path)

        return _each_rendition

    def remove_all_renditions(self) -> PathAction:
        """Remove every rendition except the original."""

        def _remove(session: TransactionalSession, path: str) -> None:
            with task_scope("removeRenditions", path):
                asset = self._require_asset(session, path)
                self._remove_where(
                    asset, lambda name: name.lower() != ORIGINAL_RENDITION,
                )

        return _remove

    def remove_all_renditions_named(self, name: str) -> PathAction:
        """Remove every rendition with the given name (case-insensitive)."""
        wanted = name.lower()

        def _remove(session: TransactionalSession, path: str) -> None:
            with task_scope("removeRenditions", path):
                asset = self._require_asset(session, path)
                self._remove_where(asset, lambda n: n.lower() == wanted)

        return _remove

    def activate_all(self) -> PathAction:
        """Activate each path using the default replication agents."""
        return self._replicate(ReplicationActionType.ACTIVATE, None)

    def activate_all_with_options(self, options: ReplicationOptions) -> PathAction:
        """Activate each path with ``options``.

        Synchronous replication is recommended for large batch publishing.
        """
        return self._replicate(ReplicationActionType.ACTIVATE, options)

    def activate_all_with_round_robin(self, *options: ReplicationOptions) -> PathAction:
        """Activate each path with the next options in turn.

        Falls back to the configured replication targets when called
        without options.
        """
        return self._replicate_round_robin(ReplicationActionType.ACTIVATE, options)

    def deactivate_all(self) -> PathAction:
        """Deactivate each path using the default replication agents."""
        return self._replicate(ReplicationActionType.DEACTIVATE, None)

    def deactivate_all_with_options(self, options: ReplicationOptions) -> PathAction:
        """Deactivate each path with ``options``."""
        return self._replicate(ReplicationActionType.DEACTIVATE, options)

    def deactivate_all_with_round_robin(self, *options: ReplicationOptions) -> PathAction:
        """Deactivate each path with the next options in turn."""
        return self._replicate_round_robin(ReplicationActionType.DEACTIVATE, options)

    # -------------------------------------------------------------------------
    # Single-session actions
    # -------------------------------------------------------------------------

    def retry(
        self,
        action: SessionAction,
        policy: RetryPolicy | None = None,
        is_transient: TransientPredicate = always_transient,
    ) -> SessionAction:
        """Retry a single action; same contract as :meth:`retry_all`."""
        return _retry(
            policy or self._settings.retry_policy, action, is_transient=is_transient,
        )

    def start_synthetic_workflow(self, model: WorkflowModel | str, path: str) -> SessionAction:
        """Run a synthetic workflow on a single node."""
        start = self.start_synthetic_workflows(model)
        return lambda session: start(session, path)

    def remove_renditions(self, path: str) -> SessionAction:
        """Remove all non-original renditions from one asset."""
        remove = self.remove_all_renditions()
        return lambda session: remove(session, path)

    def remove_renditions_named(self, path: str, name: str) -> SessionAction:
        """Remove renditions with the given name from one asset."""
        remove = self.remove_all_renditions_named(name)
        return lambda session: remove(session, path)

    def activate(self, path: str) -> SessionAction:
        """Activate a single node."""
        activate = self.activate_all()
        return lambda session: activate(session, path)

    def activate_with_options(self, path: str, options: ReplicationOptions) -> SessionAction:
        """Activate a single node using ``options``."""
        activate = self.activate_all_with_options(options)
        return lambda session: activate(session, path)

    def deactivate(self, path: str) -> SessionAction:
        """Deactivate a single node."""
        deactivate = self.deactivate_all()
        return lambda session: deactivate(session, path)

    def deactivate_with_options(self, path: str, options: ReplicationOptions) -> SessionAction:
        """Deactivate a single node using ``options``."""
        deactivate = self.deactivate_all_with_options(options)
        return lambda session: deactivate(session, path)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _require_asset(self, session: TransactionalSession, path: str) -> Asset:
        asset = self._inspector.resolve(session, path)
        if asset is None:
            raise AssetNotFoundError(path)
        return asset

    def _remove_where(self, asset: Asset, should_remove: Callable[[str], bool]) -> None:
        for rendition in tuple(asset.renditions()):
            if should_remove(rendition.name):
                asset.remove_rendition(rendition.name)
                logger.debug(
                    "rendition_removed",
                    extra={"path": asset.path, "rendition": rendition.name},
                )

    def _replicate(
        self,
        action_type: ReplicationActionType,
        options: ReplicationOptions | None,
    ) -> PathAction:
        operation = action_type.value

        def _send(session: TransactionalSession, path: str) -> None:
            with task_scope(operation, path):
                if options is None:
                    self._replicator.replicate(session, action_type, path)
                else:
                    self._replicator.replicate(session, action_type, path, options)

        return _send

    def _replicate_round_robin(
        self,
        action_type: ReplicationActionType,
        options: tuple[ReplicationOptions, ...],
    ) -> PathAction:
        targets = options or self._settings.replication_targets
        if not targets:
            raise EmptyDistributionError(f"{action_type.value} targets")
        cursor = RoundRobin(targets)
        # RoundRobin is not atomic; workers share this closure.
        lock = threading.Lock()
        operation = action_type.value

        def _send(session: TransactionalSession, path: str) -> None:
            with task_scope(operation, path):
                with lock:
                    target = next(cursor)
                self._replicator.replicate(session, action_type, path, target)

        return _send
