"""Concrete collaborator bindings (SQLAlchemy repository)."""

from dam_kernel.adapters.repository import (
    RepositorySession,
    SqlAlchemyAsset,
    SqlAlchemyAssetInspector,
)

__all__ = [
    "RepositorySession",
    "SqlAlchemyAsset",
    "SqlAlchemyAssetInspector",
]
