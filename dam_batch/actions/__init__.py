"""Catalog of deferred actions."""

from dam_batch.actions.catalog import Collaborators, DeferredActions

__all__ = ["Collaborators", "DeferredActions"]
