"""Release classification.

Decides whether the changes merged since the last release call for a patch
or a minor release.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import ChangeRecord, ReleaseType

FEATURE_MARKERS = ("new feature", "feature request")


def _texts(change: ChangeRecord | str) -> list[str]:
    if isinstance(change, str):
        return [change]
    return [change.title, *change.labels]


def classify_release(changes: Iterable[ChangeRecord | str]) -> ReleaseType:
    """Classify a batch of merged changes.

    Any change whose title or labels contain "new feature" or "feature
    request" (case-sensitive) makes the release MINOR; otherwise it is PATCH.
    Changes that were closed without merging are ignored.

    Examples:
        classify_release([]) → ReleaseType.PATCH
        classify_release(["add new feature X"]) → ReleaseType.MINOR
    """
    for change in changes:
        if isinstance(change, ChangeRecord) and not change.merged:
            continue
        for text in _texts(change):
            if any(marker in text for marker in FEATURE_MARKERS):
                return ReleaseType.MINOR
    return ReleaseType.PATCH


def merged_only(changes: Iterable[ChangeRecord]) -> list[ChangeRecord]:
    """Drop changes that were closed without being merged."""
    return [c for c in changes if c.merged]
