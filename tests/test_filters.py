"""Tests for filtering and aggregate statistics."""
import pytest

from himalayanatlas.model.filters import (
    FilterCriteria,
    FilteredView,
    Statistics,
    apply,
    filter_options,
    nation_breakdown,
    peak_breakdown,
    rate,
    summarize,
    year_range,
)
from himalayanatlas.model.peak_identity import PeakIdentityResolver
from himalayanatlas.model.records import Corpus, Season


def _ids(view: FilteredView) -> list[str]:
    return [e.expedition_id for e in view.expeditions]


class TestRate:
    def test_empty_denominator(self):
        assert rate(3, 0) == 0.0

    def test_capped_at_hundred(self):
        assert rate(5, 2) == 100.0

    def test_plain_percentage(self):
        assert rate(1, 4) == 25.0


class TestApply:
    def test_no_criteria_keeps_everything(self, corpus):
        view = apply(corpus, None, FilterCriteria())
        assert len(view.expeditions) == len(corpus.expeditions)
        assert view.peaks == corpus.peaks

    def test_year(self, corpus):
        view = apply(corpus, 1953, FilterCriteria())
        assert _ids(view) == ["EVER53101", "EVER53102", "LHOT53101"]

    def test_peak_group_includes_sub_summits(self, corpus):
        view = apply(corpus, 1953, FilterCriteria(peak_id="EVER"))
        assert _ids(view) == ["EVER53101", "EVER53102"]

    def test_peak_group_from_member_id(self, corpus):
        view = apply(corpus, None, FilterCriteria(peak_id="EVEK2"))
        assert _ids(view) == ["EVER53101", "EVER53102"]

    def test_custom_resolver(self, corpus):
        view = apply(corpus, None, FilterCriteria(peak_id="EVER"), resolver=PeakIdentityResolver({}))
        assert _ids(view) == ["EVER53101"]

    def test_season_and_success(self, corpus):
        assert _ids(apply(corpus, None, FilterCriteria(season=Season.AUTUMN))) == ["EVER53102"]
        assert _ids(apply(corpus, None, FilterCriteria(success_only=True))) == ["EVER53101", "ANN150101"]

    def test_nation(self, corpus):
        assert _ids(apply(corpus, None, FilterCriteria(nation="France"))) == ["ANN150101"]

    def test_height_range_resolves_sub_summit_peaks(self, corpus):
        view = apply(corpus, None, FilterCriteria(height_range=(8800, 9000)))
        assert _ids(view) == ["EVER53101", "EVER53102"]

    def test_team_size_range_is_inclusive(self, corpus):
        view = apply(corpus, None, FilterCriteria(team_size_range=(8, 9)))
        assert _ids(view) == ["EVER53102", "ANN150101"]

    def test_members_and_references_follow_expeditions(self, corpus):
        view = apply(corpus, 1953, FilterCriteria(peak_id="EVER"))
        assert {m.expedition_id for m in view.members} == {"EVER53101", "EVER53102"}
        assert len(view.members) == 3
        assert [r.expedition_id for r in view.references] == ["EVER53101"]
        assert [p.peak_id for p in view.expedition_peaks] == ["EVER"]

    def test_no_match_yields_empty_view(self, corpus):
        view = apply(corpus, 1800, FilterCriteria())
        assert view.expeditions == ()
        assert view.members == ()

    def test_empty_corpus(self):
        assert apply(Corpus(), 1953, FilterCriteria()).expeditions == ()


class TestSummarize:
    def test_everest_1953(self, corpus):
        stats = summarize(apply(corpus, 1953, FilterCriteria(peak_id="EVER")))
        assert stats.total_expeditions == 2
        assert stats.successful_expeditions == 1
        assert stats.total_deaths == 1
        assert stats.total_members == 21
        assert stats.success_rate == 50.0
        assert stats.oxygen_usage_rate == 50.0
        assert stats.mortality_rate == pytest.approx(100 / 21)

    def test_seasonal_groups_in_encounter_order(self, corpus):
        stats = summarize(apply(corpus, 1953, FilterCriteria(peak_id="EVER")))
        assert [s.season for s in stats.seasonal_stats] == [Season.SPRING, Season.AUTUMN]
        assert stats.seasonal_stats[0].label == "Spring (Mar-May)"
        assert stats.seasonal_stats[0].success_rate == 100.0

    def test_yearly_groups_sorted(self, corpus):
        stats = summarize(apply(corpus, None, FilterCriteria()))
        assert [y.year for y in stats.yearly_stats] == [1950, 1953]
        assert stats.yearly_stats[1].expeditions == 3
        assert stats.yearly_stats[1].deaths == 1

    def test_zero_expeditions(self, corpus):
        stats = summarize(apply(corpus, 1800, FilterCriteria()))
        assert stats == Statistics()
        assert stats.success_rate == 0.0
        assert stats.seasonal_stats == ()

    def test_zero_members_has_zero_mortality(self, corpus):
        stats = summarize(apply(corpus, 1953, FilterCriteria(peak_id="LHOT")))
        assert stats.total_members == 0
        assert stats.mortality_rate == 0.0


class TestBreakdowns:
    def test_peak_breakdown_busiest_first(self, corpus):
        rows = peak_breakdown(apply(corpus, None, FilterCriteria()))
        assert [r.key for r in rows] == ["EVER", "ANN1", "LHOT"]
        assert rows[0].expeditions == 2
        assert rows[0].height_m == 8849

    def test_nation_breakdown(self, corpus):
        rows = nation_breakdown(apply(corpus, 1953, FilterCriteria()))
        assert {r.key for r in rows} == {"UK", "Switzerland", "USA"}
        assert all(r.expeditions == 1 for r in rows)

    def test_year_range(self, corpus):
        assert year_range(corpus) == (1950, 1953)
        assert year_range(Corpus()) is None

    def test_filter_options(self, corpus):
        options = filter_options(apply(corpus, None, FilterCriteria()))
        assert [p.peak_id for p in options.peaks] == ["EVER", "LHOT", "ANN1"]
        assert options.seasons == (Season.SPRING, Season.AUTUMN)
        assert options.nations == ("France", "Switzerland", "UK", "USA")
