"""Tests for the side panels (filters and analytics), driven without an event loop."""
import pytest

from himalayanatlas.model.filters import FilterCriteria, Statistics, apply, peak_breakdown, summarize
from himalayanatlas.model.records import Season
from himalayanatlas.model.state import AtlasState
from himalayanatlas.view.tabs.tab_analytics import AnalyticsPanel, format_group_stats, format_seasons
from himalayanatlas.view.tabs.tab_filters import MAX_HEIGHT_M, FilterControlPanel, range_or_none


class TestRangeOrNone:
    def test_unset_is_unbounded(self):
        assert range_or_none(0, 0, MAX_HEIGHT_M) is None

    def test_open_upper_end_uses_ceiling(self):
        assert range_or_none(8000, 0, MAX_HEIGHT_M) == (8000, MAX_HEIGHT_M)

    def test_reversed_ends_are_ordered(self):
        assert range_or_none(10, 2, 1000) == (2, 10)


@pytest.fixture
def loaded_state(corpus):
    state = AtlasState()
    state.set_corpus(corpus)
    return state


@pytest.fixture
def filter_panel(qapp, loaded_state):
    panel = FilterControlPanel()
    panel.set_options(loaded_state.filter_options())
    return panel


class TestFilterControlPanel:
    def test_options_come_from_whole_corpus(self, filter_panel, loaded_state):
        # The state sits on 1950, but options span every year
        assert loaded_state.selected_year == 1950
        nations = [filter_panel.nation_combo.itemData(i) for i in range(filter_panel.nation_combo.count())]
        assert nations == [None, "France", "Switzerland", "UK", "USA"]
        peaks = [filter_panel.peak_combo.itemData(i) for i in range(filter_panel.peak_combo.count())]
        assert peaks == [None, "EVER", "LHOT", "ANN1"]

    def test_defaults_to_empty_criteria(self, filter_panel):
        assert filter_panel.current_criteria() == FilterCriteria()

    def test_each_control_emits_full_criteria(self, filter_panel):
        emitted = []
        filter_panel.criteria_changed.connect(emitted.append)

        filter_panel.season_combo.setCurrentIndex(filter_panel.season_combo.findText(Season.SPRING.label))
        filter_panel.nation_combo.setCurrentIndex(filter_panel.nation_combo.findData("UK"))
        filter_panel.success_check.setChecked(True)
        filter_panel.height_min_spin.setValue(8000)

        assert len(emitted) == 4
        assert emitted[-1] == FilterCriteria(
            season=Season.SPRING,
            nation="UK",
            success_only=True,
            height_range=(8000, MAX_HEIGHT_M),
        )

    def test_criteria_drive_the_state(self, filter_panel, loaded_state):
        filter_panel.criteria_changed.connect(loaded_state.set_criteria)
        loaded_state.set_year(1953)
        filter_panel.nation_combo.setCurrentIndex(filter_panel.nation_combo.findData("USA"))
        assert [e.expedition_id for e in loaded_state.view.expeditions] == ["LHOT53101"]

    def test_set_peak_is_silent(self, filter_panel):
        emitted = []
        filter_panel.criteria_changed.connect(emitted.append)
        filter_panel.set_peak("EVER")
        assert filter_panel.current_criteria().peak_id == "EVER"
        filter_panel.set_peak(None)
        assert filter_panel.current_criteria().peak_id is None
        assert emitted == []

    def test_clear_emits_once(self, filter_panel):
        filter_panel.success_check.setChecked(True)
        filter_panel.team_min_spin.setValue(3)
        emitted = []
        filter_panel.criteria_changed.connect(emitted.append)
        filter_panel.clear()
        assert emitted == [FilterCriteria()]

    def test_reload_keeps_selection_that_still_exists(self, filter_panel, loaded_state):
        filter_panel.nation_combo.setCurrentIndex(filter_panel.nation_combo.findData("UK"))
        filter_panel.set_options(loaded_state.filter_options())
        assert filter_panel.current_criteria().nation == "UK"


class TestAnalyticsPanel:
    def test_group_rows_skip_idle_entries(self, corpus):
        view = apply(corpus, 1953, FilterCriteria())
        text = format_group_stats(peak_breakdown(view))
        assert text.startswith("1. <b>Everest</b> (8849 m): 2 expeditions")
        assert "Annapurna" not in text

    def test_empty_view(self):
        assert format_seasons(Statistics()) == "No expeditions."
        assert format_group_stats([]) == "No expeditions."

    def test_refresh_fills_every_section(self, qapp, corpus):
        view = apply(corpus, None, FilterCriteria())
        panel = AnalyticsPanel()
        panel.refresh(view, summarize(view))
        assert "<b>Expeditions:</b> 4" in panel.lbl_overview.text()
        assert Season.SPRING.label in panel.lbl_seasons.text()
        assert "Everest" in panel.lbl_peaks.text()
        assert "Switzerland" in panel.lbl_nations.text()
