"""Tests for the two-phase data loader."""
import json
import os

import numpy as np
import pytest

from himalayanatlas import config
from himalayanatlas.model.io import DataLoader, DataLoadError, LoadCancelled, read_csv_rows, read_json
from himalayanatlas.model.records import GeoTier


class TestReaders:
    def test_csv_trims_and_skips_blank_rows(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text(" A , B \n 1 , x \n\n,\n2\n", encoding="utf-8")
        assert read_csv_rows(str(path)) == [{"A": "1", "B": "x"}, {"A": "2", "B": ""}]

    def test_csv_quoted_commas(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text('NAME,TITLE\nHunt,"Everest, 1953"\n', encoding="utf-8")
        assert read_csv_rows(str(path))[0]["TITLE"] == "Everest, 1953"

    def test_json(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text('{"a": [1, 2]}', encoding="utf-8")
        assert read_json(str(path)) == {"a": [1, 2]}


class TestDataLoader:
    def test_raw_fallback_reports_each_file(self, raw_data_dir):
        progress: list[tuple[float, str]] = []
        loader = DataLoader(str(raw_data_dir), rng=np.random.default_rng(0))
        corpus = loader.load(progress=lambda pct, msg: progress.append((pct, msg)))

        assert [pct for pct, _ in progress] == pytest.approx([0.0, 20.0, 40.0, 60.0, 80.0, 100.0])
        assert progress[1][1] == "Loaded expeditions."
        assert len(corpus.expeditions) == 4
        assert len(corpus.members) == 4
        assert len(corpus.references) == 1
        everest = next(p for p in corpus.peaks if p.peak_id == "EVER")
        assert everest.coordinate.tier is GeoTier.EXACT

    def test_consolidated_first(self, consolidated_data_dir):
        progress: list[float] = []
        corpus = DataLoader(str(consolidated_data_dir)).load(progress=lambda pct, msg: progress.append(pct))

        assert progress == [0.0, 100.0]
        assert corpus.summary == {"total_expeditions": 4}
        assert corpus.references == ()
        assert all((p.coordinate.lat, p.coordinate.lng) == (28.0, 85.0) for p in corpus.peaks)

    def test_incomplete_consolidated_set_falls_back(self, consolidated_data_dir, raw_data_dir):
        os.remove(consolidated_data_dir / config.CONSOLIDATED_SOURCES["members"])
        corpus = DataLoader(str(raw_data_dir)).load()
        assert len(corpus.references) == 1

    def test_consolidated_with_wrong_shape_falls_back(self, raw_data_dir):
        for name, filename in config.CONSOLIDATED_SOURCES.items():
            (raw_data_dir / filename).write_text("{}", encoding="utf-8")
        corpus = DataLoader(str(raw_data_dir)).load()
        assert len(corpus.references) == 1

    @pytest.mark.parametrize("bad_row", [None, 42, ["EVER53101"]])
    def test_consolidated_with_non_object_rows_falls_back(self, raw_data_dir, bad_row):
        payloads = {
            "expeditions": [bad_row],
            "peaks": [],
            "summary": {},
            "members": [],
        }
        for name, filename in config.CONSOLIDATED_SOURCES.items():
            (raw_data_dir / filename).write_text(json.dumps(payloads[name]), encoding="utf-8")

        progress: list[float] = []
        corpus = DataLoader(str(raw_data_dir)).load(progress=lambda pct, msg: progress.append(pct))

        assert progress[-1] == 100.0 and len(progress) == 6
        assert len(corpus.expeditions) == 4
        assert len(corpus.references) == 1

    def test_missing_raw_file_is_fatal(self, raw_data_dir):
        os.remove(raw_data_dir / config.RAW_SOURCES["references"])
        with pytest.raises(DataLoadError, match="Failed to load references"):
            DataLoader(str(raw_data_dir)).load()

    def test_empty_directory(self, tmp_path):
        with pytest.raises(DataLoadError):
            DataLoader(str(tmp_path)).load()

    def test_cancel_before_load(self, raw_data_dir):
        loader = DataLoader(str(raw_data_dir))
        loader.cancel()
        loader.cancel()
        assert loader.cancelled
        with pytest.raises(LoadCancelled):
            loader.load()

    def test_cancel_between_files(self, raw_data_dir):
        loader = DataLoader(str(raw_data_dir))

        def cancel_after_first_file(pct: float, msg: str) -> None:
            if pct > 0:
                loader.cancel()

        with pytest.raises(LoadCancelled):
            loader.load(progress=cancel_after_first_file)

    def test_cancelled_is_a_load_error(self):
        assert issubclass(LoadCancelled, DataLoadError)
