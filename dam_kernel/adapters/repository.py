"""
SQLAlchemy binding of the session and asset-inspection protocols.

Contract:
    ``RepositorySession`` adapts a SQLAlchemy ``Session`` to
    ``ManagedSession``:  revert -> rollback, refresh -> expire_all.
    ``SqlAlchemyAssetInspector`` resolves repository paths to
    ``SqlAlchemyAsset`` views over ``AssetModel`` rows.

Architecture position:
    Kernel > Adapters.  Imports from db/, models/ and domain/.  Nothing in
    domain/ or services/ imports this module; hosts inject it.

Resolution rules:
    - An exact asset path resolves to that asset (subassets included).
    - Any path below ``<asset>/jcr:content`` (e.g. a rendition path)
      resolves to the owning asset.
    - Anything else resolves to None.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from dam_kernel.domain.types import Rendition
from dam_kernel.logging_config import get_logger
from dam_kernel.models.asset import AssetModel

logger = get_logger("adapters.repository")

USER_DATA_KEY = "dam_user_data"
_CONTENT_NODE = "/jcr:content"


class RepositorySession:
    """Unit-of-work handle over one SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def factory(
        cls, session_factory: Callable[[], Session],
    ) -> Callable[[], RepositorySession]:
        """Build a per-task session factory for a batch host."""
        return lambda: cls(session_factory())

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user_data(self) -> str | None:
        return self._session.info.get(USER_DATA_KEY)

    def revert(self) -> None:
        self._session.rollback()

    def refresh(self) -> None:
        self._session.expire_all()

    def set_user_data(self, value: str | None) -> None:
        self._session.info[USER_DATA_KEY] = value

    def commit(self) -> None:
        self._session.commit()

    def close(self) -> None:
        self._session.close()


class SqlAlchemyAsset:
    """Asset view bound to the session that loaded it."""

    def __init__(self, session: Session, model: AssetModel):
        self._session = session
        self._model = model

    @property
    def path(self) -> str:
        return self._model.path

    @property
    def mime_type(self) -> str | None:
        return self._model.mime_type

    def renditions(self) -> tuple[Rendition, ...]:
        return tuple(r.to_dto() for r in self._model.renditions)

    def rendition(self, name: str) -> Rendition | None:
        for r in self._model.renditions:
            if r.name == name:
                return r.to_dto()
        return None

    def remove_rendition(self, name: str) -> None:
        for r in list(self._model.renditions):
            if r.name == name:
                self._model.renditions.remove(r)
                self._session.flush()
                logger.debug(
                    "rendition_removed",
                    extra={"path": self._model.path, "rendition": name},
                )
                return
        logger.debug(
            "rendition_not_present",
            extra={"path": self._model.path, "rendition": name},
        )

    def __repr__(self) -> str:
        return f"SqlAlchemyAsset({self._model.path!r})"


class SqlAlchemyAssetInspector:
    """Resolves paths against the ``dam_assets`` table."""

    def resolve(self, session: RepositorySession, path: str) -> SqlAlchemyAsset | None:
        db = session.session
        for candidate in _candidate_asset_paths(path):
            model = db.execute(
                select(AssetModel).where(AssetModel.path == candidate)
            ).scalar_one_or_none()
            if model is not None:
                return SqlAlchemyAsset(db, model)
        return None


def _candidate_asset_paths(path: str) -> tuple[str, ...]:
    if _CONTENT_NODE in path:
        owner = path.split(_CONTENT_NODE, 1)[0]
        return (path, owner) if owner else (path,)
    return (path,)
