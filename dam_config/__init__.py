"""
dam_config -- single public entrypoint for action settings.

Responsibility:
    ``get_action_settings()`` is the way hosts obtain retry, replication,
    workflow and runner settings.  YAML parsing lives in ``loader`` and is
    not called directly by the catalog or the runner.

Architecture position:
    Configuration -- sits above ``dam_kernel`` and below ``dam_batch``.
    The kernel MUST NEVER import from ``dam_config``.

Failure modes:
    - ``FileNotFoundError`` -- settings file does not exist.
    - ``KeyError`` / ``ValueError`` / ``InvalidRetryPolicyError`` -- invalid
      document (see ``loader``).
"""

from __future__ import annotations

from pathlib import Path

from dam_config.loader import load_yaml_file, parse_action_settings
from dam_config.schema import ActionSettings, RunnerSettings
from dam_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_action_settings(path: Path | str | None = None) -> ActionSettings:
    """Load action settings from ``path`` (packaged defaults when None)."""
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_action_settings(load_yaml_file(settings_path))

    logger.info(
        "action_settings_loaded",
        extra={
            "settings_path": str(settings_path),
            "max_attempts": settings.retry_policy.max_attempts,
            "delay_seconds": settings.retry_policy.delay_seconds,
            "replication_targets": len(settings.replication_targets),
            "workflow_models": sorted(settings.workflow_models),
            "max_workers": settings.runner.max_workers,
        },
    )
    return settings


__all__ = [
    "ActionSettings",
    "DEFAULT_SETTINGS_PATH",
    "RunnerSettings",
    "get_action_settings",
]
