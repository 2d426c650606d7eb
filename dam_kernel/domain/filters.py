"""
Filter algebra over (session, path) predicates.

Contract:
    Every factory returns a ``PathFilter`` -- ``(session, path) -> bool``.
    Filters are stateless, never mutate the session or the repository, and
    are safe to evaluate concurrently on disjoint paths.

    Unresolvable paths are a silent skip: asset filters return False rather
    than raising.

Combinators:
    negate(value)          -- boolean not, the building block of negation()
    negation(predicate)    -- predicate whose result is the opposite
    all_of(*predicates)    -- true iff every predicate is true (short-circuit)
"""

from __future__ import annotations

import re

from dam_kernel.domain.freshness import is_outdated
from dam_kernel.domain.protocols import AssetInspector, PathFilter, TransactionalSession
from dam_kernel.domain.types import ORIGINAL_RENDITION
from dam_kernel.logging_config import get_logger, task_scope

logger = get_logger("domain.filters")

SUBASSET_PATTERN = ".*?/subassets/.*"


def negate(value: bool) -> bool:
    """Return the opposite of its input."""
    return not value


def negation(predicate: PathFilter) -> PathFilter:
    """Return a predicate answering the opposite of ``predicate``."""

    def _negated(session: TransactionalSession, path: str) -> bool:
        return negate(predicate(session, path))

    return _negated


def all_of(*predicates: PathFilter) -> PathFilter:
    """Sequence predicates; stops at the first one that answers False."""

    def _all(session: TransactionalSession, path: str) -> bool:
        for predicate in predicates:
            if not predicate(session, path):
                return False
        return True

    return _all


def matching(pattern: str) -> PathFilter:
    """True if ``pattern`` matches the whole path (not a substring search)."""
    compiled = re.compile(pattern)

    def _matching(session: TransactionalSession, path: str) -> bool:
        return compiled.fullmatch(path) is not None

    return _matching


def not_matching(pattern: str) -> PathFilter:
    """False for paths matched by ``pattern``, e.g. to drop subassets."""
    return negation(matching(pattern))


def exclude_subassets() -> PathFilter:
    """True if the path is not a subasset."""
    return not_matching(SUBASSET_PATTERN)


def is_valid_asset(inspector: AssetInspector) -> PathFilter:
    """True if the path resolves to an asset.

    Filtering in the query that selects candidates is cheaper when possible.
    """

    def _is_valid_asset(session: TransactionalSession, path: str) -> bool:
        with task_scope("filterNonAssets", path):
            return inspector.resolve(session, path) is not None

    return _is_valid_asset


def has_outdated_renditions(inspector: AssetInspector) -> PathFilter:
    """True if the asset has no derived renditions or any older than its original.

    Useful for regenerating missing or outdated thumbnails.
    """

    def _has_outdated(session: TransactionalSession, path: str) -> bool:
        with task_scope("filterAssetsWithOutdatedRenditions", path):
            asset = inspector.resolve(session, path)
            if asset is None:
                return False
            if asset.rendition(ORIGINAL_RENDITION) is None:
                return False
            outdated = is_outdated(asset.renditions())
            if outdated:
                logger.debug("outdated_renditions_detected", extra={"path": path})
            return outdated

    return _has_outdated
