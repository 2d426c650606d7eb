"""
ActionRunner -- session-per-item batch host for deferred actions.

Contract:
    Runs one path action over a set of item paths on a worker pool.  Each
    item gets its own session from the injected factory; the session never
    outlives the item.  A failing item is reverted and recorded; it never
    aborts the run.

Architecture: dam_batch/services.  Imports from dam_batch.domain and the
    kernel protocols; collaborators and sessions are injected.

Per-item lifecycle:
    open session -> filter (False -> SKIPPED) -> action -> commit -> SUCCEEDED
                                                    \\-> raise -> revert -> FAILED
    The session is closed in every case.  A session that cannot be opened,
    reverted or closed fails (or is logged against) that item only.

Non-goals:
    - Does NOT persist job state; results are returned as frozen DTOs.
    - Does NOT retry -- wrap the action with ``retry_all`` for that.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from uuid import UUID, uuid4

from dam_config.schema import ActionSettings
from dam_kernel.domain.clock import Clock, SystemClock
from dam_kernel.domain.protocols import (
    ManagedSession,
    PathAction,
    PathFilter,
    SessionAction,
)
from dam_kernel.logging_config import LogContext, get_logger

from dam_batch.domain.types import (
    ActionRunResult,
    ItemResult,
    ItemStatus,
    RunStatus,
)

logger = get_logger("batch.runner")

UNHANDLED_ERROR_CODE = "UNHANDLED_EXCEPTION"


class ActionRunner:
    """Thread-pool batch host with one session per item.

    Contract:
        - ``run()`` processes every path and returns an ``ActionRunResult``
          whose item results follow the input order.
        - ``run_single()`` runs a session-only action once.
    """

    def __init__(
        self,
        session_factory: Callable[[], ManagedSession],
        clock: Clock | None = None,
        max_workers: int = 4,
        commit_after_each_item: bool = True,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._max_workers = max_workers
        self._commit = commit_after_each_item

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], ManagedSession],
        settings: ActionSettings,
        clock: Clock | None = None,
    ) -> ActionRunner:
        return cls(
            session_factory,
            clock=clock,
            max_workers=settings.runner.max_workers,
            commit_after_each_item=settings.runner.commit_after_each_item,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        paths: Iterable[str],
        action: PathAction,
        item_filter: PathFilter | None = None,
        correlation_id: str | None = None,
    ) -> ActionRunResult:
        """Apply ``action`` to every path accepted by ``item_filter``."""
        start_time = self._clock.monotonic()
        started_at = self._clock.now()
        job_id = uuid4()
        items = list(enumerate(paths))

        logger.info(
            "action_run_started",
            extra={
                "job_id": str(job_id),
                "total_items": len(items),
                "max_workers": self._max_workers,
                "correlation_id": correlation_id,
            },
        )

        def _process(item: tuple[int, str]) -> ItemResult:
            index, path = item
            return self._process_item(
                index, path, action, item_filter, job_id, correlation_id,
            )

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="dam-action",
        ) as pool:
            item_results = tuple(pool.map(_process, items))

        succeeded = sum(1 for r in item_results if r.status is ItemStatus.SUCCEEDED)
        failed = sum(1 for r in item_results if r.status is ItemStatus.FAILED)
        skipped = sum(1 for r in item_results if r.status is ItemStatus.SKIPPED)

        if failed == 0:
            status = RunStatus.COMPLETED
        elif succeeded == 0:
            status = RunStatus.FAILED
        else:
            status = RunStatus.PARTIALLY_COMPLETED

        duration_ms = int((self._clock.monotonic() - start_time) * 1000)
        logger.info(
            "action_run_completed",
            extra={
                "job_id": str(job_id),
                "status": status.value,
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "duration_ms": duration_ms,
            },
        )

        return ActionRunResult(
            job_id=job_id,
            status=status,
            total_items=len(item_results),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            item_results=item_results,
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration_ms,
            correlation_id=correlation_id,
        )

    def run_single(self, action: SessionAction, item_key: str = "single") -> ItemResult:
        """Run a session-only action once, with the same item lifecycle."""
        return self._process_item(
            0, item_key, lambda session, _path: action(session), None, uuid4(), None,
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _process_item(
        self,
        index: int,
        path: str,
        action: PathAction,
        item_filter: PathFilter | None,
        job_id: UUID,
        correlation_id: str | None,
    ) -> ItemResult:
        item_start = self._clock.monotonic()
        started_at = self._clock.now()
        session: ManagedSession | None = None

        with LogContext.bind(
            job_id=str(job_id), correlation_id=correlation_id, item_path=path,
        ):
            try:
                session = self._session_factory()
                if item_filter is not None and not item_filter(session, path):
                    status = ItemStatus.SKIPPED
                else:
                    action(session, path)
                    if self._commit:
                        session.commit()
                    status = ItemStatus.SUCCEEDED
                error_code = error_message = None
            except Exception as exc:
                if session is not None:
                    self._release(session.revert, "session_revert_failed")
                status = ItemStatus.FAILED
                code = getattr(exc, "code", None)
                error_code = str(code) if code is not None else UNHANDLED_ERROR_CODE
                error_message = str(exc)
                logger.warning(
                    "item_failed",
                    extra={"item_index": index, "error_code": error_code},
                    exc_info=True,
                )
            finally:
                if session is not None:
                    self._release(session.close, "session_close_failed")

        return ItemResult(
            item_index=index,
            item_key=path,
            status=status,
            error_code=error_code,
            error_message=error_message,
            duration_ms=int((self._clock.monotonic() - item_start) * 1000),
            started_at=started_at,
            completed_at=self._clock.now(),
        )

    @staticmethod
    def _release(step: Callable[[], None], event: str) -> None:
        # Revert/close errors are logged; the item keeps its original outcome.
        try:
            step()
        except Exception:
            logger.error(event, exc_info=True)
