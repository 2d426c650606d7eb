"""ORM models for the repository adapter."""

from dam_kernel.models.asset import AssetModel, RenditionModel

__all__ = [
    "AssetModel",
    "RenditionModel",
]
