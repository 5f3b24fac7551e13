"""Tests for the peak consolidation table."""
import logging

from himalayanatlas.model.peak_identity import DEFAULT_RESOLVER, PEAK_GROUPS, PeakIdentityResolver


class TestPeakIdentityResolver:
    def test_canonical_of_member(self):
        assert DEFAULT_RESOLVER.canonical_of("EVEK2") == "EVER"
        assert DEFAULT_RESOLVER.canonical_of("EVER") == "EVER"

    def test_unknown_id_is_its_own_canonical(self):
        assert DEFAULT_RESOLVER.canonical_of("AMAD") == "AMAD"
        assert DEFAULT_RESOLVER.canonical_group("AMAD") == frozenset({"AMAD"})

    def test_group_from_canonical_or_member(self):
        expected = frozenset({"EVER", "EVEK2"})
        assert DEFAULT_RESOLVER.canonical_group("EVER") == expected
        assert DEFAULT_RESOLVER.canonical_group("EVEK2") == expected

    def test_every_group_contains_its_canonical(self):
        for canonical in PEAK_GROUPS:
            assert canonical in DEFAULT_RESOLVER.canonical_group(canonical)

    def test_custom_table(self):
        resolver = PeakIdentityResolver({"AAAA": ("AAAB",)})
        assert resolver.canonical_group("AAAB") == frozenset({"AAAA", "AAAB"})
        assert resolver.canonical_of("EVEK2") == "EVEK2"

    def test_conflicting_membership_keeps_first(self, caplog):
        with caplog.at_level(logging.WARNING, logger="himalayanatlas"):
            resolver = PeakIdentityResolver({"AAAA": ("XXXX",), "BBBB": ("XXXX",)})
        assert resolver.canonical_of("XXXX") == "AAAA"
        assert "XXXX" in caplog.text
