"""
Tests for dam_batch.actions.catalog.DeferredActions.

Every catalog entry is exercised against the collaborator fakes from
conftest.py: filters, retry wrappers, synthetic workflows, rendition
removal, and (round-robin) replication.
"""

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

from dam_batch.actions.catalog import Collaborators, DeferredActions
from dam_config.schema import ActionSettings
from dam_kernel.domain.types import (
    WORKFLOW_USER_DATA,
    ReplicationActionType,
    ReplicationOptions,
    RetryPolicy,
    WorkflowModel,
)
from dam_kernel.exceptions import AssetNotFoundError, EmptyDistributionError
from dam_kernel.logging_config import LogContext

T0 = datetime(2024, 3, 1, 9, 0, 0)
ASSET = "/content/dam/we-retail/en/activities/biking.jpg"
ACTIVATE = ReplicationActionType.ACTIVATE
DEACTIVATE = ReplicationActionType.DEACTIVATE

PUBLISH_1 = ReplicationOptions(synchronous=True, agent_ids=("publish1",))
PUBLISH_2 = ReplicationOptions(synchronous=True, agent_ids=("publish2",))
PUBLISH_3 = ReplicationOptions(synchronous=True, agent_ids=("publish3",))

UPDATE_ASSET = WorkflowModel("/var/workflow/models/dam/update_asset", "DAM Update Asset")


def _with_renditions(inspector, path=ASSET):
    return inspector.add(path, {
        "original": T0,
        "cq5dam.thumbnail.48.48.png": T0 + timedelta(minutes=1),
        "cq5dam.web.1280.1280.jpeg": T0 + timedelta(minutes=2),
    })


# =============================================================================
# Filters
# =============================================================================


class TestFilters:

    def test_not_(self, actions):
        assert actions.not_(True) is False
        assert DeferredActions.not_(False) is True

    def test_matching_and_not_matching(self, actions, session):
        assert actions.filter_matching(".*\\.jpg")(session, ASSET) is True
        assert actions.filter_not_matching(".*\\.jpg")(session, ASSET) is False

    def test_filter_out_subassets(self, actions, session):
        f = actions.filter_out_subassets()
        assert f(session, ASSET) is True
        assert f(session, f"{ASSET}/subassets/page1.png") is False

    def test_filter_non_assets(self, actions, session, inspector):
        inspector.add(ASSET)
        f = actions.filter_non_assets()
        assert f(session, ASSET) is True
        assert f(session, "/content/dam/we-retail") is False

    def test_filter_assets_with_outdated_renditions(self, actions, session, inspector):
        inspector.add(ASSET, {"original": T0, "thumb": T0 - timedelta(seconds=1)})
        inspector.add("/content/dam/fresh.jpg", {"original": T0, "thumb": T0})
        f = actions.filter_assets_with_outdated_renditions()
        assert f(session, ASSET) is True
        assert f(session, "/content/dam/fresh.jpg") is False


# =============================================================================
# Retry wrappers
# =============================================================================


class TestRetry:

    def test_retry_all_recovers(self, actions, session, replicator):
        replicator.fail(ASSET, times=2)
        actions.retry_all(actions.activate_all(), RetryPolicy(3))(session, ASSET)

        assert len(replicator.calls) == 3
        assert session.calls == ["revert", "refresh", "revert", "refresh"]

    def test_retry_all_exhausted(self, actions, session, replicator, transient_error):
        replicator.fail(ASSET)
        wrapped = actions.retry_all(actions.activate_all(), RetryPolicy(2))

        with pytest.raises(transient_error):
            wrapped(session, ASSET)
        assert len(replicator.calls) == 2

    def test_retry_all_uses_configured_policy(
        self, inspector, replicator, workflow_runner, session, transient_error,
    ):
        actions = DeferredActions(
            Collaborators(inspector, replicator, workflow_runner),
            ActionSettings(retry_policy=RetryPolicy(4)),
        )
        replicator.fail(ASSET)

        with pytest.raises(transient_error):
            actions.retry_all(actions.activate_all())(session, ASSET)
        assert len(replicator.calls) == 4

    def test_retry_single_session_action(self, actions, session, replicator):
        replicator.fail(ASSET, times=1)
        actions.retry(actions.activate(ASSET), RetryPolicy(2))(session)
        assert len(replicator.calls) == 2

    def test_non_transient_not_retried(self, actions, session, replicator, transient_error):
        replicator.fail(ASSET)
        wrapped = actions.retry_all(
            actions.activate_all(), RetryPolicy(5), is_transient=lambda exc: False,
        )
        with pytest.raises(transient_error):
            wrapped(session, ASSET)
        assert len(replicator.calls) == 1
        assert session.calls == []


# =============================================================================
# Synthetic workflows
# =============================================================================


class TestSyntheticWorkflows:

    def test_start_synthetic_workflows(self, actions, session, workflow_runner):
        actions.start_synthetic_workflows(UPDATE_ASSET)(session, ASSET)

        assert workflow_runner.calls == [
            (ASSET, UPDATE_ASSET, False, False, WORKFLOW_USER_DATA),
        ]
        assert session.user_data == WORKFLOW_USER_DATA

    def test_model_by_configured_key(self, inspector, replicator, workflow_runner, session):
        actions = DeferredActions(
            Collaborators(inspector, replicator, workflow_runner),
            ActionSettings(workflow_models={"update": UPDATE_ASSET}),
        )
        actions.start_synthetic_workflow("update", ASSET)(session)
        assert workflow_runner.calls[0][1] is UPDATE_ASSET

    def test_unknown_key_fails_at_build_time(self, actions):
        with pytest.raises(KeyError):
            actions.start_synthetic_workflows("nope")

    def test_start_synthetic_workflow_single(self, actions, session, workflow_runner):
        actions.start_synthetic_workflow(UPDATE_ASSET, ASSET)(session)
        assert [c[0] for c in workflow_runner.calls] == [ASSET]


# =============================================================================
# Renditions
# =============================================================================


class TestRenditions:

    def test_with_all_renditions_invokes_per_passing_rendition(
        self, actions, session, inspector,
    ):
        _with_renditions(inspector)
        seen: list[str] = []
        wrapped = actions.with_all_renditions(
            lambda s, p: seen.append(p),
            actions.filter_matching(".*/cq5dam\\..*"),
        )
        wrapped(session, ASSET)

        # The asset path is handed to the action, once per matching rendition.
        assert seen == [ASSET, ASSET]

    def test_with_all_renditions_filters_see_rendition_paths(
        self, actions, session, inspector,
    ):
        _with_renditions(inspector)
        paths: list[str] = []

        def _record(s, p):
            paths.append(p)
            return True

        actions.with_all_renditions(lambda s, p: None, _record)(session, ASSET)
        assert sorted(paths) == sorted(
            f"{ASSET}/jcr:content/renditions/{name}"
            for name in ("original", "cq5dam.thumbnail.48.48.png", "cq5dam.web.1280.1280.jpeg")
        )

    def test_with_all_renditions_no_filters(self, actions, session, inspector):
        _with_renditions(inspector)
        calls: list[str] = []
        actions.with_all_renditions(lambda s, p: calls.append(p))(session, ASSET)
        assert len(calls) == 3

    def test_with_all_renditions_short_circuits(self, actions, session, inspector):
        _with_renditions(inspector)
        second: list[str] = []

        def _never(s, p):
            second.append(p)
            return True

        actions.with_all_renditions(
            lambda s, p: None, lambda s, p: False, _never,
        )(session, ASSET)
        assert second == []

    def test_with_all_renditions_rejecting_filter_skips_action(
        self, actions, session, inspector,
    ):
        _with_renditions(inspector)
        calls: list[str] = []

        actions.with_all_renditions(
            lambda s, p: calls.append(p), lambda s, p: False,
        )(session, ASSET)
        assert calls == []

    def test_missing_asset_raises(self, actions, session):
        with pytest.raises(AssetNotFoundError) as exc_info:
            actions.with_all_renditions(lambda s, p: None)(session, ASSET)
        assert exc_info.value.path == ASSET

    def test_remove_all_renditions_keeps_original(self, actions, session, inspector):
        asset = _with_renditions(inspector)
        actions.remove_all_renditions()(session, ASSET)

        assert [r.name for r in asset.renditions()] == ["original"]
        assert sorted(asset.removed) == [
            "cq5dam.thumbnail.48.48.png", "cq5dam.web.1280.1280.jpeg",
        ]

    def test_remove_all_renditions_original_case_insensitive(
        self, actions, session, inspector,
    ):
        asset = inspector.add(ASSET, {"ORIGINAL": T0, "web": T0})
        actions.remove_all_renditions()(session, ASSET)
        assert [r.name for r in asset.renditions()] == ["ORIGINAL"]

    def test_remove_all_renditions_named(self, actions, session, inspector):
        asset = _with_renditions(inspector)
        actions.remove_all_renditions_named("CQ5DAM.WEB.1280.1280.JPEG")(session, ASSET)
        assert asset.removed == ["cq5dam.web.1280.1280.jpeg"]

    def test_remove_named_absent_is_noop(self, actions, session, inspector):
        asset = _with_renditions(inspector)
        actions.remove_all_renditions_named("nope")(session, ASSET)
        assert asset.removed == []

    def test_remove_missing_asset_raises(self, actions, session):
        with pytest.raises(AssetNotFoundError):
            actions.remove_all_renditions()(session, ASSET)

    def test_remove_renditions_single(self, actions, session, inspector):
        asset = _with_renditions(inspector)
        actions.remove_renditions(ASSET)(session)
        assert [r.name for r in asset.renditions()] == ["original"]

    def test_remove_renditions_named_single(self, actions, session, inspector):
        asset = _with_renditions(inspector)
        actions.remove_renditions_named(ASSET, "cq5dam.thumbnail.48.48.png")(session)
        assert asset.removed == ["cq5dam.thumbnail.48.48.png"]


# =============================================================================
# Replication
# =============================================================================


class TestReplication:

    def test_activate_all_uses_default_agents(self, actions, session, replicator):
        actions.activate_all()(session, ASSET)
        assert replicator.calls == [(ACTIVATE, ASSET, None)]

    def test_deactivate_all(self, actions, session, replicator):
        actions.deactivate_all()(session, ASSET)
        assert replicator.calls == [(DEACTIVATE, ASSET, None)]

    def test_with_options(self, actions, session, replicator):
        actions.activate_all_with_options(PUBLISH_1)(session, ASSET)
        actions.deactivate_all_with_options(PUBLISH_2)(session, ASSET)
        assert replicator.calls == [
            (ACTIVATE, ASSET, PUBLISH_1),
            (DEACTIVATE, ASSET, PUBLISH_2),
        ]

    def test_single_session_variants(self, actions, session, replicator):
        actions.activate(ASSET)(session)
        actions.activate_with_options(ASSET, PUBLISH_1)(session)
        actions.deactivate(ASSET)(session)
        actions.deactivate_with_options(ASSET, PUBLISH_2)(session)
        assert replicator.calls == [
            (ACTIVATE, ASSET, None),
            (ACTIVATE, ASSET, PUBLISH_1),
            (DEACTIVATE, ASSET, None),
            (DEACTIVATE, ASSET, PUBLISH_2),
        ]

    def test_round_robin_cycles_options(self, actions, session, replicator):
        publish = actions.activate_all_with_round_robin(PUBLISH_1, PUBLISH_2, PUBLISH_3)
        for i in range(5):
            publish(session, f"/content/dam/{i}.jpg")

        assert [c[2] for c in replicator.calls] == [
            PUBLISH_1, PUBLISH_2, PUBLISH_3, PUBLISH_1, PUBLISH_2,
        ]

    def test_round_robin_deactivate(self, actions, session, replicator):
        unpublish = actions.deactivate_all_with_round_robin(PUBLISH_1, PUBLISH_2)
        unpublish(session, "/a")
        unpublish(session, "/b")
        assert replicator.calls == [(DEACTIVATE, "/a", PUBLISH_1), (DEACTIVATE, "/b", PUBLISH_2)]

    def test_round_robin_closures_have_independent_cursors(
        self, actions, session, replicator,
    ):
        first = actions.activate_all_with_round_robin(PUBLISH_1, PUBLISH_2)
        second = actions.activate_all_with_round_robin(PUBLISH_1, PUBLISH_2)
        first(session, "/a")
        second(session, "/b")
        assert [c[2] for c in replicator.calls] == [PUBLISH_1, PUBLISH_1]

    def test_round_robin_falls_back_to_configured_targets(
        self, inspector, replicator, workflow_runner, session,
    ):
        actions = DeferredActions(
            Collaborators(inspector, replicator, workflow_runner),
            ActionSettings(replication_targets=(PUBLISH_2, PUBLISH_3)),
        )
        publish = actions.activate_all_with_round_robin()
        publish(session, "/a")
        publish(session, "/b")
        assert [c[2] for c in replicator.calls] == [PUBLISH_2, PUBLISH_3]

    def test_round_robin_without_targets_raises(self, actions):
        with pytest.raises(EmptyDistributionError) as exc_info:
            actions.activate_all_with_round_robin()
        assert exc_info.value.purpose == "activate targets"

    def test_failed_item_still_consumes_its_slot(
        self, actions, session, replicator, transient_error,
    ):
        replicator.fail("/b")
        publish = actions.activate_all_with_round_robin(PUBLISH_1, PUBLISH_2)
        publish(session, "/a")
        with pytest.raises(transient_error):
            publish(session, "/b")
        publish(session, "/c")
        assert [c[2] for c in replicator.calls] == [PUBLISH_1, PUBLISH_2, PUBLISH_1]

    def test_round_robin_fair_under_concurrency(self, actions, session, replicator):
        publish = actions.activate_all_with_round_robin(PUBLISH_1, PUBLISH_2, PUBLISH_3)
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: publish(session, f"/content/dam/{i}.jpg"), range(300)))

        counts = Counter(c[2] for c in replicator.calls)
        assert counts == {PUBLISH_1: 100, PUBLISH_2: 100, PUBLISH_3: 100}

    def test_replicator_errors_propagate(self, actions, session, replicator, transient_error):
        replicator.fail(ASSET)
        with pytest.raises(transient_error):
            actions.activate_all()(session, ASSET)


# =============================================================================
# Diagnostics
# =============================================================================


class TestTaskLabels:

    def test_replication_label_bound_during_call(self, actions, session, replicator):
        actions.activate_all()(session, ASSET)
        actions.deactivate_all()(session, ASSET)
        assert replicator.labels == [f"activate-{ASSET}", f"deactivate-{ASSET}"]
        assert LogContext.get("task_label") is None

    def test_label_restored_after_error(self, actions, session, replicator, transient_error):
        replicator.fail(ASSET)
        LogContext.set(task_label="outer")
        with pytest.raises(transient_error):
            actions.activate_all()(session, ASSET)
        assert LogContext.get("task_label") == "outer"

    def test_workflow_label(self, actions, session, captured_logs):
        actions.start_synthetic_workflows(UPDATE_ASSET)(session, ASSET)
        started = [r for r in captured_logs() if r["message"] == "synthetic_workflow_started"]
        assert started[0]["task_label"] == f"synWf-{ASSET}"
        assert started[0]["model_id"] == UPDATE_ASSET.model_id

    def test_labels_isolated_between_threads(self, actions, session, replicator):
        barrier = threading.Barrier(2)
        publish = actions.activate_all()

        def _run(path):
            barrier.wait()
            publish(session, path)

        with ThreadPoolExecutor(max_workers=2) as pool:
            list(pool.map(_run, ["/a", "/b"]))

        assert sorted(replicator.labels) == ["activate-/a", "activate-/b"]
