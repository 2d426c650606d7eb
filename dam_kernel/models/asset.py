"""
ORM models for the repository adapter.

Contract:
    AssetModel and RenditionModel persist assets and their renditions.
    RenditionModel converts to the frozen ``Rendition`` DTO via ``to_dto()``.

Architecture: dam_kernel/models.  Imports from dam_kernel.db.base and
    dam_kernel.domain.types only.

Invariants enforced:
    - ``path`` is UNIQUE per asset.
    - (asset_id, name) is UNIQUE per rendition.
    - Renditions are deleted with their asset (delete-orphan cascade).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dam_kernel.db.base import TrackedBase, UUIDString
from dam_kernel.domain.types import Rendition, rendition_path


class AssetModel(TrackedBase):
    """Persistent asset node."""

    __tablename__ = "dam_assets"

    path: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    mime_type: Mapped[str | None] = mapped_column(String(200), nullable=True)

    renditions: Mapped[list["RenditionModel"]] = relationship(
        "RenditionModel",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="RenditionModel.name",
    )


class RenditionModel(TrackedBase):
    """Persistent rendition of an asset."""

    __tablename__ = "dam_renditions"

    __table_args__ = (
        UniqueConstraint("asset_id", "name", name="uq_dam_renditions_asset_name"),
        Index("ix_dam_renditions_asset_id", "asset_id"),
    )

    asset_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("dam_assets.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    creation_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    asset: Mapped[AssetModel] = relationship(
        "AssetModel", back_populates="renditions",
    )

    def to_dto(self) -> Rendition:
        return Rendition(
            name=self.name,
            creation_time=self.creation_time,
            path=rendition_path(self.asset.path, self.name),
        )
