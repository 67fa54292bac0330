"""Memoization and cycle breaking for reference-to-reference comparisons."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from .models import CacheKey, DiffContext


logger = structlog.get_logger()


class ReferenceDiffCache:
    """
    Base class for diff engines that compare elements reachable through ``$ref``.

    Results are stored per ``(left_ref, right_ref, context)``. While a pair is
    being compared its ``left:right`` key sits in the caller's ``ref_set``; a
    second visit to the same pair on the current stack is a cycle and yields
    ``None`` ("no further contribution").
    """

    def __init__(self):
        self._cache: dict[CacheKey, Any] = {}

    def cached_diff(
        self,
        ref_set: set[str],
        left: Any,
        right: Any,
        left_ref: Optional[str],
        right_ref: Optional[str],
        context: DiffContext,
    ) -> Any:
        """
        Compare two elements, reusing a previous result for the same reference pair.

        Args:
            ref_set: Reference pairs currently being compared on this stack
            left: The old element
            right: The new element
            left_ref: ``$ref`` the old element was reached through, if any
            right_ref: ``$ref`` the new element was reached through, if any
            context: Comparison context

        Returns:
            The change record, or None when nothing changed or a cycle was broken
        """
        if left_ref is None or right_ref is None:
            return self.compute_diff(ref_set, left, right, context)

        key = CacheKey(left_ref, right_ref, context)
        if key in self._cache:
            logger.debug("Reference cache hit", left_ref=left_ref, right_ref=right_ref)
            return self._cache[key]

        ref_key = f"{left_ref}:{right_ref}"
        if ref_key in ref_set:
            logger.debug("Cycle detected", ref_key=ref_key)
            return None

        ref_set.add(ref_key)
        try:
            result = self.compute_diff(ref_set, left, right, context)
            self._cache[key] = result
        finally:
            ref_set.discard(ref_key)
        return result

    def compute_diff(
        self,
        ref_set: set[str],
        left: Any,
        right: Any,
        context: DiffContext,
    ) -> Any:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self._cache)
