"""
Atlas State (Data Model)
========================
This module defines the central data structure for the running application.

Why is this file needed?
------------------------
1. State Management: It holds the loaded corpus, the active year and the
   active filter criteria in one place.
2. Derived data: The filtered view and its statistics are recomputed eagerly
   whenever an input changes. Results are memoized on the identity of the
   inputs; a cache miss simply re-runs the pure functions in filters.py.
3. Decoupling: Views read from this object; Controllers write to it.

Classes:
    AtlasState: The main container class.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from himalayanatlas.model.filters import (
    FilterCriteria, FilteredView, FilterOptions, Statistics, apply, filter_options, summarize, year_range
)
from himalayanatlas.model.peak_identity import DEFAULT_RESOLVER, PeakIdentityResolver
from himalayanatlas.model.records import Corpus

logger = logging.getLogger(__name__)


@dataclass
class AtlasState:
    """
    Singleton-like class that holds the entire state of the open atlas.
    Pass this instance to your Controllers and Views.
    """
    corpus: Corpus = field(default_factory=Corpus)
    selected_year: Optional[int] = None
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    resolver: PeakIdentityResolver = field(default=DEFAULT_RESOLVER, repr=False)

    _cached_corpus: Optional[Corpus] = field(default=None, init=False, repr=False)
    _cache_key: Optional[tuple] = field(default=None, init=False, repr=False)
    _cached_view: Optional[FilteredView] = field(default=None, init=False, repr=False)
    _cached_stats: Optional[Statistics] = field(default=None, init=False, repr=False)

    def set_corpus(self, corpus: Corpus) -> None:
        """Install a freshly loaded corpus and start at its first year."""
        self.corpus = corpus
        span = year_range(corpus)
        if span is not None and not self.selected_year:
            self.selected_year = span[0]
        logger.info(f"Corpus installed; selected year = {self.selected_year}.")

    def set_year(self, year: Optional[int]) -> None:
        self.selected_year = year

    def set_criteria(self, criteria: FilterCriteria) -> None:
        self.criteria = criteria

    def select_peak(self, peak_id: Optional[str]) -> None:
        """Narrow the criteria to one peak group (None clears it)."""
        current = self.criteria
        self.criteria = FilterCriteria(
            peak_id=peak_id,
            season=current.season,
            nation=current.nation,
            success_only=current.success_only,
            height_range=current.height_range,
            team_size_range=current.team_size_range,
        )

    @property
    def view(self) -> FilteredView:
        self._refresh()
        return self._cached_view

    @property
    def statistics(self) -> Statistics:
        self._refresh()
        return self._cached_stats

    def filter_options(self) -> FilterOptions:
        """Choices for the filter controls, taken from the whole corpus rather than the current year."""
        return filter_options(apply(self.corpus, None, FilterCriteria(), self.resolver))

    def _refresh(self) -> None:
        key = (self.selected_year, self.criteria)
        if self.corpus is self._cached_corpus and key == self._cache_key and self._cached_view is not None:
            return
        self._cached_view = apply(self.corpus, self.selected_year, self.criteria, self.resolver)
        self._cached_stats = summarize(self._cached_view)
        self._cached_corpus = self.corpus
        self._cache_key = key
        logger.debug(f"Recomputed view: {len(self._cached_view.expeditions)} expeditions "
                     f"for year={self.selected_year}.")

    def reset(self) -> None:
        """Clear all data for a new load."""
        self.corpus = Corpus()
        self.selected_year = None
        self.criteria = FilterCriteria()
        self._cached_corpus = None
        self._cache_key = None
        self._cached_view = None
        self._cached_stats = None
        logger.info("Atlas state has been reset.")
