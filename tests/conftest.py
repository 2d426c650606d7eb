"""
Shared test fixtures.

Unit tests run against in-memory fakes of the collaborator protocols
(session, asset inspector, replicator, workflow runner).  Repository adapter
tests use in-memory SQLite (see ``sqlite_session_factory``).
"""

import json
import logging
import threading
from datetime import datetime
from io import StringIO

import pytest

from dam_batch.actions.catalog import Collaborators, DeferredActions
from dam_kernel.domain.types import (
    ReplicationActionType,
    ReplicationOptions,
    Rendition,
    WorkflowModel,
    rendition_path,
)
from dam_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture dam_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, actions, session):
            actions.activate_all()(session, "/content/dam/a.jpg")
            logs = captured_logs()
            assert any(r["message"] == "..." for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dam_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Collaborator fakes
# =============================================================================


class TransientError(Exception):
    """Stand-in for a repository write conflict."""


class FakeSession:
    """Records every lifecycle call in order."""

    def __init__(self):
        self.calls: list[str] = []
        self.user_data: str | None = None

    def revert(self) -> None:
        self.calls.append("revert")

    def refresh(self) -> None:
        self.calls.append("refresh")

    def set_user_data(self, value: str | None) -> None:
        self.user_data = value

    def commit(self) -> None:
        self.calls.append("commit")

    def close(self) -> None:
        self.calls.append("close")


class FakeAsset:
    def __init__(self, path: str, renditions=()):
        self._path = path
        self._renditions: list[Rendition] = list(renditions)
        self.removed: list[str] = []

    @property
    def path(self) -> str:
        return self._path

    def renditions(self) -> tuple[Rendition, ...]:
        return tuple(self._renditions)

    def rendition(self, name: str) -> Rendition | None:
        for r in self._renditions:
            if r.name == name:
                return r
        return None

    def remove_rendition(self, name: str) -> None:
        for r in self._renditions:
            if r.name == name:
                self._renditions.remove(r)
                self.removed.append(name)
                return


class FakeInspector:
    """Resolves paths registered with ``add``; everything else is None."""

    def __init__(self):
        self.assets: dict[str, FakeAsset] = {}
        self.resolved: list[str] = []

    def add(self, path: str, renditions: dict[str, datetime] | None = None) -> FakeAsset:
        asset = FakeAsset(
            path,
            [
                Rendition(name, created, rendition_path(path, name))
                for name, created in (renditions or {}).items()
            ],
        )
        self.assets[path] = asset
        return asset

    def resolve(self, session, path: str) -> FakeAsset | None:
        self.resolved.append(path)
        return self.assets.get(path)


class FakeReplicator:
    """Records replication calls; ``fail(path, times)`` makes a path raise."""

    def __init__(self):
        self.calls: list[tuple[ReplicationActionType, str, ReplicationOptions | None]] = []
        self.labels: list[str | None] = []
        self._failures: dict[str, int] = {}
        self._lock = threading.Lock()

    def fail(self, path: str, times: int = 1_000_000) -> None:
        self._failures[path] = times

    def replicate(self, session, action_type, path, options=None) -> None:
        with self._lock:
            self.calls.append((action_type, path, options))
            self.labels.append(LogContext.get("task_label"))
            remaining = self._failures.get(path, 0)
            if remaining > 0:
                self._failures[path] = remaining - 1
                raise TransientError(f"conflict replicating {path}")


class FakeWorkflowRunner:
    def __init__(self):
        self.calls: list[tuple[str, WorkflowModel, bool, bool, str | None]] = []

    def execute(self, session, path, model, auto_save_after_each_step, auto_save_at_end):
        self.calls.append(
            (path, model, auto_save_after_each_step, auto_save_at_end, session.user_data)
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def transient_error():
    """Exception type raised by FakeReplicator for failing paths."""
    return TransientError


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def session_factory():
    """Factory handing out FakeSessions; ``.sessions`` lists every one made."""

    class _Factory:
        def __init__(self):
            self.sessions: list[FakeSession] = []
            self._lock = threading.Lock()

        def __call__(self) -> FakeSession:
            s = FakeSession()
            with self._lock:
                self.sessions.append(s)
            return s

    return _Factory()


@pytest.fixture
def inspector():
    return FakeInspector()


@pytest.fixture
def replicator():
    return FakeReplicator()


@pytest.fixture
def workflow_runner():
    return FakeWorkflowRunner()


@pytest.fixture
def actions(inspector, replicator, workflow_runner):
    """DeferredActions wired to the fakes with default settings."""
    return DeferredActions(Collaborators(inspector, replicator, workflow_runner))


@pytest.fixture
def sqlite_session_factory():
    """Session factory bound to a fresh in-memory SQLite schema."""
    from dam_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
        reset_engine,
    )

    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()
