"""
Filter & Statistics Engine
==========================
Pure, synchronous functions over a normalized Corpus.

`apply` narrows expeditions in a fixed order (year -> peak group -> season ->
success-only, then the optional nation/height/team-size criteria) and joins
members/references to the surviving expedition ids. `summarize` derives
aggregate rates; every rate guards its denominator and stays in [0, 100].
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from himalayanatlas.model.peak_identity import DEFAULT_RESOLVER, PeakIdentityResolver
from himalayanatlas.model.records import (
    Corpus, ExpeditionRecord, MemberRecord, PeakRecord, ReferenceRecord, Season
)

logger = logging.getLogger(__name__)

MAX_NATION_OPTIONS: int = 50


@dataclass(frozen=True)
class FilterCriteria:
    """Immutable per evaluation. Ranges are inclusive; None means unbounded."""
    peak_id: Optional[str] = None
    season: Optional[Season] = None
    nation: Optional[str] = None
    success_only: bool = False
    height_range: Optional[tuple[int, int]] = None
    team_size_range: Optional[tuple[int, int]] = None


@dataclass(frozen=True)
class FilteredView:
    year: Optional[int]
    criteria: FilterCriteria
    expeditions: tuple[ExpeditionRecord, ...] = ()
    members: tuple[MemberRecord, ...] = ()
    references: tuple[ReferenceRecord, ...] = ()
    peaks: tuple[PeakRecord, ...] = ()
    expedition_peaks: tuple[PeakRecord, ...] = ()


@dataclass(frozen=True)
class SeasonStat:
    season: Season
    expeditions: int
    success_rate: float

    @property
    def label(self) -> str:
        return self.season.label


@dataclass(frozen=True)
class YearStat:
    year: int
    expeditions: int
    success_rate: float
    deaths: int


@dataclass(frozen=True)
class GroupStat:
    """Per-peak or per-nation breakdown row."""
    key: str
    label: str
    expeditions: int
    success_rate: float
    deaths: int
    height_m: int = 0


@dataclass(frozen=True)
class Statistics:
    total_expeditions: int = 0
    successful_expeditions: int = 0
    total_deaths: int = 0
    total_members: int = 0
    success_rate: float = 0.0
    mortality_rate: float = 0.0
    oxygen_usage_rate: float = 0.0
    seasonal_stats: tuple[SeasonStat, ...] = field(default_factory=tuple)
    yearly_stats: tuple[YearStat, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FilterOptions:
    peaks: tuple[PeakRecord, ...]
    seasons: tuple[Season, ...]
    nations: tuple[str, ...]


def rate(part: float, whole: float) -> float:
    """Percentage of part in whole: 0 for an empty whole, capped at 100."""
    if whole <= 0:
        return 0.0
    return max(0.0, min(100.0, part / whole * 100.0))


# ------------------------------------------------------------------------------
# Filtering
# ------------------------------------------------------------------------------

def apply(
    corpus: Corpus,
    year: Optional[int],
    criteria: FilterCriteria,
    resolver: PeakIdentityResolver = DEFAULT_RESOLVER,
) -> FilteredView:
    expeditions: Iterable[ExpeditionRecord] = corpus.expeditions
    peaks_by_id = {p.peak_id: p for p in corpus.peaks}

    predicates: list[Callable[[ExpeditionRecord], bool]] = []
    if year:
        predicates.append(lambda e: e.year == year)
    if criteria.peak_id:
        group = resolver.canonical_group(criteria.peak_id)
        predicates.append(lambda e: e.peak_id in group)
    if criteria.season is not None:
        predicates.append(lambda e: e.season == criteria.season)
    if criteria.success_only:
        predicates.append(lambda e: e.success)
    if criteria.nation:
        predicates.append(lambda e: e.nation == criteria.nation)
    if criteria.height_range is not None:
        low, high = criteria.height_range

        def within_height(e: ExpeditionRecord) -> bool:
            peak = peaks_by_id.get(e.peak_id) or peaks_by_id.get(resolver.canonical_of(e.peak_id))
            return peak is not None and low <= peak.height_m <= high

        predicates.append(within_height)
    if criteria.team_size_range is not None:
        low_size, high_size = criteria.team_size_range
        predicates.append(lambda e: low_size <= e.total_members <= high_size)

    for predicate in predicates:
        expeditions = [e for e in expeditions if predicate(e)]
    expeditions = tuple(expeditions)

    expedition_ids = {e.expedition_id for e in expeditions}
    members = tuple(m for m in corpus.members if m.expedition_id in expedition_ids)
    references = tuple(r for r in corpus.references if r.expedition_id in expedition_ids)

    peak_ids = {e.peak_id for e in expeditions}
    expedition_peaks = tuple(p for p in corpus.peaks if p.peak_id in peak_ids)

    return FilteredView(
        year=year,
        criteria=criteria,
        expeditions=expeditions,
        members=members,
        references=references,
        peaks=corpus.peaks,
        expedition_peaks=expedition_peaks,
    )


# ------------------------------------------------------------------------------
# Statistics
# ------------------------------------------------------------------------------

def _success_rate(expeditions: list[ExpeditionRecord]) -> float:
    return rate(sum(1 for e in expeditions if e.success), len(expeditions))


def summarize(view: FilteredView) -> Statistics:
    expeditions = view.expeditions
    total = len(expeditions)
    if total == 0:
        return Statistics()

    successful = sum(1 for e in expeditions if e.success)
    deaths = sum(e.deaths for e in expeditions)
    members = sum(e.total_members for e in expeditions)
    oxygen = sum(1 for e in expeditions if e.oxygen_used)

    # dicts keep encounter order
    by_season: dict[Season, list[ExpeditionRecord]] = {}
    by_year: dict[int, list[ExpeditionRecord]] = {}
    for e in expeditions:
        by_season.setdefault(e.season, []).append(e)
        by_year.setdefault(e.year, []).append(e)

    seasonal = tuple(
        SeasonStat(season=season, expeditions=len(exps), success_rate=_success_rate(exps))
        for season, exps in by_season.items()
    )
    yearly = tuple(
        YearStat(
            year=year,
            expeditions=len(exps),
            success_rate=_success_rate(exps),
            deaths=sum(e.deaths for e in exps),
        )
        for year, exps in sorted(by_year.items())
    )

    return Statistics(
        total_expeditions=total,
        successful_expeditions=successful,
        total_deaths=deaths,
        total_members=members,
        success_rate=rate(successful, total),
        mortality_rate=rate(deaths, members),
        oxygen_usage_rate=rate(oxygen, total),
        seasonal_stats=seasonal,
        yearly_stats=yearly,
    )


def peak_breakdown(
    view: FilteredView,
    limit: int = 10,
    resolver: PeakIdentityResolver = DEFAULT_RESOLVER,
) -> list[GroupStat]:
    """Per-peak activity for the peaks in the view, busiest first. Sub-summits count toward their group."""
    by_peak: dict[str, list[ExpeditionRecord]] = {}
    for e in view.expeditions:
        by_peak.setdefault(resolver.canonical_of(e.peak_id), []).append(e)

    rows = [
        GroupStat(
            key=peak.peak_id,
            label=peak.name,
            expeditions=len(by_peak.get(peak.peak_id, [])),
            success_rate=_success_rate(by_peak.get(peak.peak_id, [])),
            deaths=sum(e.deaths for e in by_peak.get(peak.peak_id, [])),
            height_m=peak.height_m,
        )
        for peak in view.peaks
    ]
    rows.sort(key=lambda r: r.expeditions, reverse=True)
    return rows[:limit]


def nation_breakdown(view: FilteredView, limit: int = 10) -> list[GroupStat]:
    by_nation: dict[str, list[ExpeditionRecord]] = {}
    for e in view.expeditions:
        by_nation.setdefault(e.nation, []).append(e)

    rows = [
        GroupStat(
            key=nation,
            label=nation or "Unknown",
            expeditions=len(exps),
            success_rate=_success_rate(exps),
            deaths=sum(e.deaths for e in exps),
        )
        for nation, exps in by_nation.items()
    ]
    rows.sort(key=lambda r: r.expeditions, reverse=True)
    return rows[:limit]


def year_range(corpus: Corpus) -> Optional[tuple[int, int]]:
    years = [e.year for e in corpus.expeditions if e.year > 0]
    if not years:
        return None
    return min(years), max(years)


def filter_options(view: FilteredView) -> FilterOptions:
    peaks = tuple(sorted(view.peaks, key=lambda p: p.height_m, reverse=True))
    seasons = tuple(dict.fromkeys(e.season for e in view.expeditions if e.season != Season.UNKNOWN))
    nations = tuple(sorted({e.nation for e in view.expeditions if e.nation}))[:MAX_NATION_OPTIONS]
    return FilterOptions(peaks=peaks, seasons=seasons, nations=nations)
