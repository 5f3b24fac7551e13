"""Tests for the memoized atlas state."""
from himalayanatlas.model.filters import FilterCriteria
from himalayanatlas.model.records import Corpus, Season
from himalayanatlas.model.state import AtlasState


class TestAtlasState:
    def test_set_corpus_starts_at_first_year(self, corpus):
        state = AtlasState()
        state.set_corpus(corpus)
        assert state.selected_year == 1950
        assert [e.expedition_id for e in state.view.expeditions] == ["ANN150101"]

    def test_set_corpus_keeps_chosen_year(self, corpus):
        state = AtlasState(selected_year=1953)
        state.set_corpus(corpus)
        assert state.selected_year == 1953

    def test_view_is_memoized(self, corpus):
        state = AtlasState()
        state.set_corpus(corpus)
        assert state.view is state.view
        assert state.statistics is state.statistics

    def test_changing_inputs_recomputes(self, corpus):
        state = AtlasState()
        state.set_corpus(corpus)
        before = state.view
        state.set_year(1953)
        assert state.view is not before
        assert state.statistics.total_expeditions == 3

    def test_replacing_corpus_recomputes_with_same_inputs(self, corpus):
        state = AtlasState(selected_year=1953)
        state.set_corpus(corpus)
        assert state.statistics.total_expeditions == 3

        smaller = Corpus(expeditions=corpus.expeditions[:1], peaks=corpus.peaks)
        state.set_corpus(smaller)
        assert state.selected_year == 1953
        assert [e.expedition_id for e in state.view.expeditions] == [corpus.expeditions[0].expedition_id]

        state.set_corpus(corpus)
        assert state.statistics.total_expeditions == 3

    def test_filter_options_ignore_year_and_criteria(self, corpus):
        state = AtlasState(criteria=FilterCriteria(nation="UK"))
        state.set_corpus(corpus)
        options = state.filter_options()
        assert options.nations == ("France", "Switzerland", "UK", "USA")
        assert [p.peak_id for p in options.peaks] == ["EVER", "LHOT", "ANN1"]

    def test_select_peak_keeps_other_criteria(self, corpus):
        state = AtlasState(criteria=FilterCriteria(season=Season.SPRING, success_only=True))
        state.set_corpus(corpus)
        state.set_year(1953)
        state.select_peak("EVER")
        assert state.criteria == FilterCriteria(peak_id="EVER", season=Season.SPRING, success_only=True)
        assert [e.expedition_id for e in state.view.expeditions] == ["EVER53101"]

        state.select_peak(None)
        assert state.criteria.peak_id is None
        assert state.statistics.total_expeditions == 1

    def test_reset(self, corpus):
        state = AtlasState()
        state.set_corpus(corpus)
        state.select_peak("EVER")
        state.reset()
        assert state.corpus == Corpus()
        assert state.selected_year is None
        assert state.criteria == FilterCriteria()
        assert state.view.expeditions == ()

    def test_empty_corpus_has_no_year(self):
        state = AtlasState()
        state.set_corpus(Corpus())
        assert state.selected_year is None
        assert state.statistics.total_expeditions == 0
