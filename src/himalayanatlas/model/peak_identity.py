"""
Peak Identity (Consolidation Table)
Maps survey codes of sub-summits and renamed peaks onto one canonical peak.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Bump when the table below changes.
PEAK_GROUPS_VERSION: int = 1

# Canonical id -> every raw id that denotes the same mountain (canonical first).
PEAK_GROUPS: dict[str, tuple[str, ...]] = {
    "YALW": ("YALW", "YALU"),
    "ANN1": ("ANN1", "ANNM", "ANNE"),
    "LHOT": ("LHOT", "LHOM", "LSHR"),
    "KANG": ("KANG", "KANC", "KANS", "KANB"),
    "EVER": ("EVER", "EVEK2"),
    "MANA": ("MANA", "MANE"),
    "DHA1": ("DHA1", "DHA2", "DHA3", "DHA4", "DHA5", "DHA6"),
}


class PeakIdentityResolver:
    """
    Resolves raw peak identifiers to their canonical group.

    Both the filter engine and the scene populator hold a reference to one
    resolver instance; neither keeps its own copy of the table.
    """

    def __init__(self, groups: Optional[Mapping[str, tuple[str, ...]]] = None) -> None:
        self.groups: dict[str, frozenset[str]] = {}
        self._canonical: dict[str, str] = {}

        for canonical, members in (PEAK_GROUPS if groups is None else groups).items():
            group = frozenset((canonical, *members))
            self.groups[canonical] = group
            for member in group:
                if member in self._canonical and self._canonical[member] != canonical:
                    logger.warning(f"Peak id '{member}' listed under both "
                                   f"'{self._canonical[member]}' and '{canonical}'.")
                    continue
                self._canonical[member] = canonical

    def canonical_of(self, peak_id: str) -> str:
        return self._canonical.get(peak_id, peak_id)

    def canonical_group(self, peak_id: str) -> frozenset[str]:
        """Every id treated as the same peak as `peak_id` (at least `{peak_id}`)."""
        canonical = self._canonical.get(peak_id)
        if canonical is None:
            return frozenset((peak_id,))
        return self.groups[canonical]


DEFAULT_RESOLVER = PeakIdentityResolver()
