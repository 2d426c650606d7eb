"""Batch host services."""

from dam_batch.services.runner import ActionRunner

__all__ = ["ActionRunner"]
