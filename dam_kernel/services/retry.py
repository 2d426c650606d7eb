"""
Retry wrappers for actions that commit their own unit of work.

Responsibility:
    Wrap a session action (or a session + path action) so that a failed
    attempt is rolled back and re-attempted a bounded number of times.

Architecture position:
    Kernel > Services -- imperative shell around a caller-owned session.
    The wrapper never creates, commits or closes the session; it only calls
    ``revert()`` and ``refresh()`` on it between attempts.

State machine (per invocation):
    ATTEMPTING(remaining=max_attempts)
        -- action returns --------------------------------> SUCCEEDED
        -- action raises, is_transient(exc) is False -----> raise exc unchanged
        -- action raises, transient ---> revert, refresh, remaining -= 1
               remaining == 0 --------------------------> raise exc unchanged
               otherwise -> sleep(delay) -> ATTEMPTING

Failure modes:
    - The last error is re-raised unmodified once the budget is spent, so the
      host records the collaborator's own error type per item.
    - ``BaseException`` subclasses that are not ``Exception`` (e.g.
      KeyboardInterrupt) are never caught, including during the delay:
      interruption aborts the sequence without consuming an attempt.
    - Errors from ``revert()`` / ``refresh()`` propagate; the session is
      unusable at that point.

Usage:
    policy = RetryPolicy(max_attempts=5, delay_seconds=0.5)
    safe_activate = retry_all(policy, actions.activate_all())
    safe_activate(session, "/content/dam/we-retail/en/activities/biking.jpg")
"""

from __future__ import annotations

import time
from collections.abc import Callable

from dam_kernel.domain.protocols import PathAction, SessionAction, TransactionalSession
from dam_kernel.domain.types import RetryPolicy
from dam_kernel.logging_config import get_logger

logger = get_logger("services.retry")

TransientPredicate = Callable[[Exception], bool]


def always_transient(exc: Exception) -> bool:
    """Default policy: every error is treated as a transient write conflict."""
    return True


def retry(
    policy: RetryPolicy,
    action: SessionAction,
    *,
    is_transient: TransientPredicate = always_transient,
    sleep: Callable[[float], None] = time.sleep,
) -> SessionAction:
    """Retry a single session action.

    Before each re-attempt the session is reverted and refreshed, so the
    wrapped action should commit its own changes.

    Args:
        policy: Attempt budget and delay between attempts.
        action: Action to attempt.
        is_transient: Decides which errors are worth retrying.
        sleep: Delay function (injected by tests).

    Returns:
        New retry wrapper around ``action`` with the same signature.
    """

    def _retrying(session: TransactionalSession) -> None:
        _attempt(policy, session, lambda: action(session), is_transient, sleep, None)

    return _retrying


def retry_all(
    policy: RetryPolicy,
    action: PathAction,
    *,
    is_transient: TransientPredicate = always_transient,
    sleep: Callable[[float], None] = time.sleep,
) -> PathAction:
    """Retry a per-path action; same contract as :func:`retry`."""

    def _retrying(session: TransactionalSession, path: str) -> None:
        _attempt(
            policy, session, lambda: action(session, path), is_transient, sleep, path,
        )

    return _retrying


def _attempt(
    policy: RetryPolicy,
    session: TransactionalSession,
    call: Callable[[], None],
    is_transient: TransientPredicate,
    sleep: Callable[[float], None],
    path: str | None,
) -> None:
    remaining = policy.max_attempts
    while True:
        try:
            call()
            return
        except Exception as exc:
            if not is_transient(exc):
                logger.info(
                    "retry_skipped_non_transient",
                    extra={"path": path, "error_type": type(exc).__name__},
                )
                raise
            session.revert()
            session.refresh()
            remaining -= 1
            attempt = policy.max_attempts - remaining
            if remaining <= 0:
                logger.warning(
                    "retry_exhausted",
                    extra={"path": path, "attempts": attempt},
                    exc_info=True,
                )
                raise
            logger.info(
                "retry_attempt_failed",
                extra={
                    "path": path,
                    "attempt": attempt,
                    "remaining": remaining,
                    "error_type": type(exc).__name__,
                },
            )
        if policy.delay_seconds > 0:
            sleep(policy.delay_seconds)
