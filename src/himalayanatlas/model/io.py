"""
Data Loading
============
Builds a normalized Corpus from the input sources in two phases:

1. Consolidated: the pre-processed JSON set. All of it must load, otherwise
   the whole phase is abandoned.
2. Raw: the CSV files, read one after another with a progress report after
   each file. Any failure here is fatal and raised as DataLoadError.

The loader is cancellable between files; cancel() may be called any number
of times and a cancelled loader never resumes.
"""
from __future__ import annotations

import csv
import json
import logging
import os
from typing import Any, Callable, Mapping, Optional

import numpy as np

from himalayanatlas import config
from himalayanatlas.model.geocoding import GeocoordinateResolver, build_reference_index
from himalayanatlas.model.normalize import build_corpus
from himalayanatlas.model.records import Corpus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


class DataLoadError(Exception):
    """A required source could not be read or parsed. Retryable."""


class LoadCancelled(DataLoadError):
    """The load was cancelled (teardown); not shown to the user."""


def read_csv_rows(filepath: str) -> list[dict[str, str]]:
    """Reads a headed CSV into dict rows with trimmed keys/values, skipping blank lines."""
    rows: list[dict[str, str]] = []
    with open(filepath, mode='r', encoding='utf-8-sig', newline='') as f:
        reader = csv.reader(f)
        header: Optional[list[str]] = None
        for raw in reader:
            if not raw or all(not cell.strip() for cell in raw):
                continue
            if header is None:
                header = [h.strip() for h in raw]
                continue
            rows.append({
                key: (raw[i].strip() if i < len(raw) else "")
                for i, key in enumerate(header) if key
            })
    return rows


def read_json(filepath: str) -> Any:
    with open(filepath, mode='r', encoding='utf-8') as f:
        return json.load(f)


class DataLoader:
    def __init__(
        self,
        data_dir: Optional[str] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.data_dir: str = data_dir or config.DATA_PATH
        self.rng: Optional[np.random.Generator] = rng
        self._cancelled: bool = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            logger.info("Data load cancelled.")
        self._cancelled = True

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise LoadCancelled("Data load was cancelled.")

    def _path(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    def load(self, progress: Optional[ProgressCallback] = None) -> Corpus:
        """
        Loads the corpus, consolidated source first, raw files as fallback.

        Args:
            progress: Called with (percent 0-100, message) as sources complete.

        Raises:
            DataLoadError: If the raw fallback cannot load a required file.
            LoadCancelled: If cancel() was called before the load finished.
        """
        report = progress or (lambda pct, msg: None)
        self._check_cancelled()
        report(0.0, "Loading expedition data...")

        corpus = self._load_consolidated()
        if corpus is not None:
            self._check_cancelled()
            report(100.0, "Loaded consolidated data.")
            return corpus

        return self._load_raw(report)

    def _load_consolidated(self) -> Optional[Corpus]:
        try:
            data = {
                name: read_json(self._path(filename))
                for name, filename in config.CONSOLIDATED_SOURCES.items()
            }
        except (OSError, ValueError) as e:
            logger.warning(f"Consolidated JSON loading failed, trying CSV: {e}")
            return None

        for name in ("expeditions", "peaks", "members"):
            if not isinstance(data[name], list):
                logger.warning(f"Consolidated source '{name}' is not a list, trying CSV.")
                return None
            if not all(isinstance(row, Mapping) for row in data[name]):
                logger.warning(f"Consolidated source '{name}' has non-object rows, trying CSV.")
                return None

        try:
            corpus = build_corpus(
                expeditions=data["expeditions"],
                members=data["members"],
                peaks=data["peaks"],
                references=[],
                geocoder=GeocoordinateResolver(rng=self.rng),
                summary=data["summary"] if isinstance(data["summary"], dict) else {},
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Consolidated JSON could not be normalized, trying CSV: {e}")
            return None

        logger.info("Loaded consolidated JSON sources.")
        return corpus

    def _load_raw(self, report: ProgressCallback) -> Corpus:
        tables: dict[str, list[dict[str, str]]] = {}
        n_files = len(config.RAW_SOURCES)

        for i, (name, filename) in enumerate(config.RAW_SOURCES.items()):
            self._check_cancelled()
            filepath = self._path(filename)
            try:
                tables[name] = read_csv_rows(filepath)
            except (OSError, csv.Error, UnicodeDecodeError) as e:
                msg = f"Failed to load {name}: {e}"
                logger.error(msg)
                raise DataLoadError(msg) from e

            logger.debug(f"Read {len(tables[name])} rows from {filepath}")
            report((i + 1) / n_files * 100.0, f"Loaded {name}.")

        self._check_cancelled()
        geocoder = GeocoordinateResolver(
            reference_index=build_reference_index(tables["coordinates"]),
            rng=self.rng,
        )
        return build_corpus(
            expeditions=tables["expeditions"],
            members=tables["members"],
            peaks=tables["peaks"],
            references=tables["references"],
            geocoder=geocoder,
        )
