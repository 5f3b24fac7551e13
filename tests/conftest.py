"""Shared fixtures: a small hand-made corpus covering the peak groups and fallbacks."""
import csv
import json
import os

import numpy as np
import pytest

from himalayanatlas import config
from himalayanatlas.model.geocoding import GeocoordinateResolver, build_reference_index
from himalayanatlas.model.normalize import build_corpus


EXPEDITION_ROWS = [
    {"EXPID": "EVER53101", "PEAKID": "EVER", "YEAR": "1953", "SEASON": "4", "NATION": "UK",
     "SUCCESS1": "True", "DEATHS": "0", "TOTMEMBERS": "13", "SMTMEMBERS": "2", "O2USED": "TRUE",
     "BCDATE": "1953-04-12", "SMTDATE": "05/29/1953"},
    {"EXPID": "EVER53102", "PEAKID": "EVEK2", "YEAR": "1953", "SEASON": "3", "NATION": "Switzerland",
     "SUCCESS1": "False", "DEATHS": "1", "TOTMEMBERS": "8"},
    {"EXPID": "ANN150101", "PEAKID": "ANN1", "YEAR": "1950", "SEASON": "4", "NATION": "France",
     "SUCCESS1": "1", "DEATHS": "0", "TOTMEMBERS": "9"},
    {"EXPID": "LHOT53101", "PEAKID": "LHOT", "YEAR": "1953", "SEASON": "4", "NATION": "USA",
     "SUCCESS1": "", "DEATHS": "", "TOTMEMBERS": "0"},
    # dropped: no year / no peak
    {"EXPID": "EVER00000", "PEAKID": "EVER", "YEAR": "", "SEASON": "4"},
    {"EXPID": "XXXX60101", "PEAKID": "", "YEAR": "1960", "SEASON": "1"},
]

MEMBER_ROWS = [
    {"EXPID": "EVER53101", "MEMBID": "1", "FNAME": "Edmund", "LNAME": "Hillary", "SEX": "M", "AGE": "33",
     "CITIZEN": "New Zealand", "MSUCCESS": "True", "DEATH": "False", "LEADER": "False", "HIRED": "False"},
    {"EXPID": "EVER53101", "MEMBID": "2", "FNAME": "Tenzing", "LNAME": "Norgay", "SEX": "M", "AGE": "39",
     "CITIZEN": "India", "MSUCCESS": "True", "DEATH": "False", "LEADER": "False", "HIRED": "True"},
    {"EXPID": "EVER53102", "MEMBID": "1", "FNAME": "A", "LNAME": "Climber", "AGE": "0", "DEATH": "1"},
    {"EXPID": "ANN150101", "MEMBID": "1", "FNAME": "Maurice", "LNAME": "Herzog", "LEADER": "TRUE"},
    {"EXPID": "", "MEMBID": "9", "FNAME": "Orphan"},
]

PEAK_ROWS = [
    {"PEAKID": "EVER", "PKNAME": "Everest", "LOCATION": "Khumbu Himal", "HEIGHTM": "8849",
     "PYEAR": "1953", "OPEN": "True"},
    {"PEAKID": "ANN1", "PKNAME": "Annapurna I", "LOCATION": "Annapurna Himal", "HEIGHTM": "8091",
     "PYEAR": "1950", "OPEN": "True"},
    {"PEAKID": "LHOT", "PKNAME": "Lhotse", "LOCATION": "Khumbu Himal", "HEIGHTM": "8516",
     "PYEAR": "1956", "OPEN": "False"},
    {"PEAKID": "BADH", "PKNAME": "Nowhere", "LOCATION": "", "HEIGHTM": "0"},
]

REFERENCE_ROWS = [
    {"EXPID": "EVER53101", "REFID": "1", "RAUTHOR": "Hunt, John", "RTITLE": "The Ascent of Everest",
     "RYEAR": "1953"},
    {"EXPID": "", "REFID": "2"},
]

COORDINATE_ROWS = [
    {"PEAKNAME": "Everest", "LATITUDE": "27.9881", "LONGITUDE": "86.9250"},
    {"PEAKNAME": "Annapurna", "LATITUDE": "28.5961", "LONGITUDE": "83.8203"},
    {"PEAKNAME": "Lhotse", "LATITUDE": "27.9617", "LONGITUDE": "86.9333"},
    {"PEAKNAME": "Nameless", "LATITUDE": "", "LONGITUDE": "86.0"},
]


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1953)


@pytest.fixture
def geocoder(rng) -> GeocoordinateResolver:
    return GeocoordinateResolver(build_reference_index(COORDINATE_ROWS), rng=rng)


@pytest.fixture
def corpus(geocoder):
    return build_corpus(
        expeditions=EXPEDITION_ROWS,
        members=MEMBER_ROWS,
        peaks=PEAK_ROWS,
        references=REFERENCE_ROWS,
        geocoder=geocoder,
    )


def _write_csv(path, rows) -> None:
    header: list[str] = []
    for row in rows:
        for key in row:
            if key not in header:
                header.append(key)
    with open(path, mode='w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=header, restval="")
        writer.writeheader()
        writer.writerows(rows)


@pytest.fixture
def raw_data_dir(tmp_path):
    """Directory holding only the raw CSV sources."""
    tables = {
        "expeditions": EXPEDITION_ROWS,
        "members": MEMBER_ROWS,
        "peaks": PEAK_ROWS,
        "references": REFERENCE_ROWS,
        "coordinates": COORDINATE_ROWS,
    }
    for name, filename in config.RAW_SOURCES.items():
        _write_csv(tmp_path / filename, tables[name])
    return tmp_path


@pytest.fixture
def consolidated_data_dir(tmp_path):
    """Directory holding the pre-processed JSON set."""
    peaks = [dict(row, coordinates={"lat": 28.0, "lng": 85.0, "tier": "exact"}) for row in PEAK_ROWS]
    payloads = {
        "expeditions": EXPEDITION_ROWS,
        "peaks": peaks,
        "summary": {"total_expeditions": 4},
        "members": MEMBER_ROWS,
    }
    for name, filename in config.CONSOLIDATED_SOURCES.items():
        with open(tmp_path / filename, mode='w', encoding='utf-8') as f:
            json.dump(payloads[name], f)
    return tmp_path


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for every Qt test; widgets render offscreen."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app
