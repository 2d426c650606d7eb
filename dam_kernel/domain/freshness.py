"""
Rendition freshness detection.

Responsibility:
    Classifies an asset's derived renditions as stale or fresh relative to
    its ``original`` rendition.  Pure functions over a rendition sequence:
    no I/O, no mutation.

Verdict rules (in order):
    1. No ``original`` rendition               -> NO_REFERENCE (not outdated)
    2. Any rendition created before original   -> OUTDATED
    3. Only the original exists (count <= 1)   -> OUTDATED
    4. Otherwise                               -> FRESH

Rule 3 is intentional: an asset that never had derived renditions generated
needs generation exactly like one whose renditions are stale.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from dam_kernel.domain.types import ORIGINAL_RENDITION, Rendition


class FreshnessVerdict(str, Enum):
    """Outcome of a freshness check."""

    OUTDATED = "outdated"
    FRESH = "fresh"
    NO_REFERENCE = "no_reference"  # no original: skipped, never "outdated"


def find_original(renditions: Iterable[Rendition]) -> Rendition | None:
    """Return the ``original`` rendition, or None."""
    for rendition in renditions:
        if rendition.name == ORIGINAL_RENDITION:
            return rendition
    return None


def classify_renditions(renditions: Iterable[Rendition]) -> FreshnessVerdict:
    """Classify the full rendition set (original included) of one asset."""
    renditions = tuple(renditions)
    original = find_original(renditions)
    if original is None:
        return FreshnessVerdict.NO_REFERENCE

    reference_time = original.creation_time
    count = 0
    for rendition in renditions:
        count += 1
        if rendition.creation_time < reference_time:
            return FreshnessVerdict.OUTDATED
    if count <= 1:
        return FreshnessVerdict.OUTDATED
    return FreshnessVerdict.FRESH


def is_outdated(renditions: Iterable[Rendition]) -> bool:
    """True if the asset's renditions need (re)generation."""
    return classify_renditions(renditions) is FreshnessVerdict.OUTDATED


def outdated_renditions(renditions: Iterable[Rendition]) -> tuple[Rendition, ...]:
    """Derived renditions created before the original (empty without one)."""
    renditions = tuple(renditions)
    original = find_original(renditions)
    if original is None:
        return ()
    return tuple(
        r for r in renditions
        if r.creation_time < original.creation_time
    )
