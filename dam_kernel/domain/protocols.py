"""
Collaborator protocols consumed by the kernel.

Contract:
    The kernel never creates, commits or closes a session and never talks to
    the repository, replication transport or workflow engine directly.  All
    of them are reached through the narrow structural interfaces below and
    are injected by the host (see ``dam_batch.actions.catalog.Collaborators``).

Architecture:
    dam_kernel/domain.  ZERO imports outside dam_kernel.domain and stdlib.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from dam_kernel.domain.types import (
    ReplicationActionType,
    ReplicationOptions,
    Rendition,
    WorkflowModel,
)


@runtime_checkable
class TransactionalSession(Protocol):
    """Caller-owned unit-of-work handle.

    ``revert()`` discards uncommitted local changes; ``refresh()``
    resynchronizes with backing state.  Both are called by the retry wrapper
    between attempts.
    """

    def revert(self) -> None: ...

    def refresh(self) -> None: ...

    def set_user_data(self, value: str | None) -> None: ...


@runtime_checkable
class ManagedSession(TransactionalSession, Protocol):
    """Session as seen by a batch host, which also owns its lifecycle."""

    def commit(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class Asset(Protocol):
    """A resolved digital asset."""

    @property
    def path(self) -> str: ...

    def renditions(self) -> Sequence[Rendition]: ...

    def rendition(self, name: str) -> Rendition | None: ...

    def remove_rendition(self, name: str) -> None: ...


@runtime_checkable
class AssetInspector(Protocol):
    """Resolves repository paths to assets.

    ``resolve`` returns None for missing paths and for nodes that are not
    assets; it must not raise for either case.
    """

    def resolve(self, session: TransactionalSession, path: str) -> Asset | None: ...


@runtime_checkable
class Replicator(Protocol):
    """Synchronous replication transport.  May raise."""

    def replicate(
        self,
        session: TransactionalSession,
        action_type: ReplicationActionType,
        path: str,
        options: ReplicationOptions | None = None,
    ) -> None: ...


@runtime_checkable
class WorkflowRunner(Protocol):
    """Runs a synthetic workflow model against one payload path."""

    def execute(
        self,
        session: TransactionalSession,
        path: str,
        model: WorkflowModel,
        auto_save_after_each_step: bool,
        auto_save_at_end: bool,
    ) -> None: ...


# Closure shapes handed to the batch host.
PathFilter = Callable[[TransactionalSession, str], bool]
PathAction = Callable[[TransactionalSession, str], None]
SessionAction = Callable[[TransactionalSession], None]
