"""
Settings loader (``dam_config.loader``).

Responsibility
--------------
Loads YAML settings documents and parses them into the frozen dataclasses of
``dam_config.schema``.  Callers outside this package go through
``dam_config.get_action_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range retry values  -> ``InvalidRetryPolicyError``.
* Wrong value types  -> ``ValueError``.

Document layout
---------------
::

    retry:
      max_attempts: 5
      delay_seconds: 0.25
    replication_targets:
      - synchronous: true
        agent_ids: [publish1]
    workflow_models:
      dam_update_asset:
        model_id: /var/workflow/models/dam/update_asset
        title: DAM Update Asset
    runner:
      max_workers: 8
      commit_after_each_item: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from dam_config.schema import ActionSettings, RunnerSettings
from dam_kernel.domain.types import ReplicationOptions, RetryPolicy, WorkflowModel


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Returns an empty dict for an empty document.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"'{key}' must be a boolean, got {value!r}")


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise ValueError(f"'{key}' must be an integer, got {value!r}")


def parse_retry_policy(data: dict[str, Any]) -> RetryPolicy:
    """Parse a RetryPolicy; ``max_attempts`` is required."""
    delay = data.get("delay_seconds", 0.0)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        raise ValueError(f"'delay_seconds' must be a number, got {delay!r}")
    return RetryPolicy(
        max_attempts=_as_int(data["max_attempts"], "max_attempts"),
        delay_seconds=float(delay),
    )


def parse_replication_options(data: dict[str, Any]) -> ReplicationOptions:
    """Parse one replication target."""
    agent_ids = data.get("agent_ids", ())
    if isinstance(agent_ids, str):
        agent_ids = (agent_ids,)
    return ReplicationOptions(
        synchronous=_as_bool(data.get("synchronous", False), "synchronous"),
        agent_ids=tuple(str(a) for a in agent_ids),
        suppress_versions=_as_bool(
            data.get("suppress_versions", False), "suppress_versions",
        ),
        suppress_status_update=_as_bool(
            data.get("suppress_status_update", False), "suppress_status_update",
        ),
    )


def parse_workflow_model(data: dict[str, Any]) -> WorkflowModel:
    """Parse a WorkflowModel; ``model_id`` is required."""
    return WorkflowModel(
        model_id=str(data["model_id"]),
        title=data.get("title"),
    )


def parse_runner_settings(data: dict[str, Any]) -> RunnerSettings:
    """Parse batch host settings."""
    max_workers = _as_int(data.get("max_workers", 4), "max_workers")
    if max_workers < 1:
        raise ValueError(f"'max_workers' must be >= 1, got {max_workers}")
    return RunnerSettings(
        max_workers=max_workers,
        commit_after_each_item=_as_bool(
            data.get("commit_after_each_item", True), "commit_after_each_item",
        ),
    )


def parse_action_settings(data: dict[str, Any]) -> ActionSettings:
    """Parse a complete settings document.  Every section is optional."""
    retry_data = data.get("retry")
    models = data.get("workflow_models") or {}
    return ActionSettings(
        retry_policy=(
            parse_retry_policy(retry_data) if retry_data else RetryPolicy()
        ),
        replication_targets=tuple(
            parse_replication_options(t)
            for t in data.get("replication_targets") or ()
        ),
        workflow_models={
            str(key): parse_workflow_model(value) for key, value in models.items()
        },
        runner=parse_runner_settings(data.get("runner") or {}),
    )
