"""
Record Normalizer
=================
Coerces raw rows (key -> string/primitive) into typed records.

Policy:
- Field coercion never raises. Counts fall back to 0, optional integers
  (ages, first-ascent years) to None, dates to None.
- Rows failing a required-field invariant are dropped whole.
- Boolean flags are declarative `FlagRule`s: true if ANY listed field holds
  ANY accepted encoding. Expedition success spans five redundant fields
  because the source mixes schemas across years.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from himalayanatlas.model.geocoding import UNKNOWN_COORDINATE, GeocoordinateResolver
from himalayanatlas.model.records import (
    Coordinate, Corpus, ExpeditionRecord, GeoTier, MemberRecord, PeakRecord, ReferenceRecord, Season
)

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]

TRUTHY_STRINGS: frozenset[str] = frozenset({"True", "TRUE", "1"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)


@dataclass(frozen=True)
class FlagRule:
    """True if any of `fields` holds a truthy encoding (string code or boolean True)."""
    fields: tuple[str, ...]
    encodings: frozenset[str] = TRUTHY_STRINGS

    def evaluate(self, row: Row) -> bool:
        for name in self.fields:
            value = row.get(name)
            if value is True:
                return True
            if isinstance(value, str) and value.strip() in self.encodings:
                return True
        return False


EXPEDITION_SUCCESS = FlagRule(("SUCCESS", "SUCCESS1", "SUCCESS2", "SUCCESS3", "SUCCESS4"))
OXYGEN_USED = FlagRule(("O2USED",))
MEMBER_SUCCESS = FlagRule(("MSUCCESS",))
MEMBER_DEATH = FlagRule(("DEATH",))
MEMBER_LEADER = FlagRule(("LEADER",))
MEMBER_HIRED = FlagRule(("HIRED",))
PEAK_OPEN = FlagRule(("OPEN",))


# ------------------------------------------------------------------------------
# Field coercion
# ------------------------------------------------------------------------------

def parse_int(value: Any) -> Optional[int]:
    """Leading integer of `value`, or None. '12abc' -> 12, '3.7' -> 3."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_count(value: Any) -> int:
    n = parse_int(value)
    return n if n is not None and n > 0 else 0


def parse_positive(value: Any) -> Optional[int]:
    n = parse_int(value)
    return n if n is not None and n > 0 else None


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_season(value: Any) -> Season:
    code = parse_int(value)
    try:
        return Season(code) if code is not None else Season.UNKNOWN
    except ValueError:
        return Season.UNKNOWN


# ------------------------------------------------------------------------------
# Entity normalizers
# ------------------------------------------------------------------------------

def _log_dropped(kind: str, total: int, kept: int) -> None:
    if total != kept:
        logger.debug(f"Dropped {total - kept} of {total} {kind} rows failing required fields.")


def normalize_expeditions(rows: Iterable[Row]) -> list[ExpeditionRecord]:
    result: list[ExpeditionRecord] = []
    total = 0
    for row in rows:
        total += 1
        peak_id = parse_str(row.get("PEAKID"))
        year = parse_int(row.get("YEAR")) or 0
        if year <= 0 or not peak_id:
            continue

        result.append(ExpeditionRecord(
            expedition_id=parse_str(row.get("EXPID")),
            peak_id=peak_id,
            year=year,
            season=parse_season(row.get("SEASON")),
            nation=parse_str(row.get("NATION")),
            success=EXPEDITION_SUCCESS.evaluate(row),
            deaths=parse_count(row.get("DEATHS")),
            oxygen_used=OXYGEN_USED.evaluate(row),
            total_members=parse_count(row.get("TOTMEMBERS")),
            summit_members=parse_count(row.get("SMTMEMBERS")),
            hired_members=parse_count(row.get("TOTHIRED")),
            member_deaths=parse_count(row.get("MDEATHS")),
            hired_deaths=parse_count(row.get("HDEATHS")),
            base_camp_date=parse_date(row.get("BCDATE")),
            summit_date=parse_date(row.get("SMTDATE")),
            termination_date=parse_date(row.get("TERMDATE")),
        ))
    _log_dropped("expedition", total, len(result))
    return result


def normalize_members(rows: Iterable[Row]) -> list[MemberRecord]:
    result: list[MemberRecord] = []
    total = 0
    for row in rows:
        total += 1
        expedition_id = parse_str(row.get("EXPID"))
        if not expedition_id:
            continue

        result.append(MemberRecord(
            member_id=parse_str(row.get("MEMBID")),
            expedition_id=expedition_id,
            first_name=parse_str(row.get("FNAME")),
            last_name=parse_str(row.get("LNAME")),
            sex=parse_str(row.get("SEX")),
            age=parse_positive(row.get("AGE")),
            citizenship=parse_str(row.get("CITIZEN")),
            success=MEMBER_SUCCESS.evaluate(row),
            death=MEMBER_DEATH.evaluate(row),
            leader=MEMBER_LEADER.evaluate(row),
            hired=MEMBER_HIRED.evaluate(row),
        ))
    _log_dropped("member", total, len(result))
    return result


def _precomputed_coordinate(value: Any) -> Optional[Coordinate]:
    """Coordinates shipped inside consolidated peak rows: {'lat', 'lng', 'tier'?}."""
    if not isinstance(value, Mapping):
        return None
    try:
        lat = float(value["lat"])
        lng = float(value["lng"])
    except (KeyError, TypeError, ValueError):
        return None
    if "tier" not in value and (lat, lng) == UNKNOWN_COORDINATE:
        return Coordinate(lat, lng, GeoTier.DEFAULT)
    try:
        tier = GeoTier(value.get("tier", GeoTier.EXACT))
    except ValueError:
        tier = GeoTier.EXACT
    return Coordinate(lat, lng, tier)


def normalize_peaks(rows: Iterable[Row], geocoder: GeocoordinateResolver) -> list[PeakRecord]:
    """Normalizes peak rows and resolves each kept peak's coordinate."""
    result: list[PeakRecord] = []
    total = 0
    for row in rows:
        total += 1
        peak_id = parse_str(row.get("PEAKID"))
        height = parse_count(row.get("HEIGHTM"))
        if not peak_id or height <= 0:
            continue

        name = parse_str(row.get("PKNAME"))
        location = parse_str(row.get("LOCATION"))
        coordinate = _precomputed_coordinate(row.get("coordinates"))
        if coordinate is None:
            coordinate = geocoder.resolve(name, location)

        result.append(PeakRecord(
            peak_id=peak_id,
            name=name,
            location=location,
            height_m=height,
            first_ascent_year=parse_positive(row.get("PYEAR")),
            open=PEAK_OPEN.evaluate(row),
            coordinate=coordinate,
        ))
    _log_dropped("peak", total, len(result))
    return result


def normalize_references(rows: Iterable[Row]) -> list[ReferenceRecord]:
    result: list[ReferenceRecord] = []
    total = 0
    for row in rows:
        total += 1
        expedition_id = parse_str(row.get("EXPID"))
        if not expedition_id:
            continue

        result.append(ReferenceRecord(
            reference_id=parse_str(row.get("REFID")),
            expedition_id=expedition_id,
            author=parse_str(row.get("RAUTHOR")),
            title=parse_str(row.get("RTITLE")),
            year=parse_positive(row.get("RYEAR")),
        ))
    _log_dropped("reference", total, len(result))
    return result


def build_corpus(
    expeditions: Iterable[Row],
    members: Iterable[Row],
    peaks: Iterable[Row],
    references: Iterable[Row],
    geocoder: GeocoordinateResolver,
    summary: Optional[dict] = None,
) -> Corpus:
    corpus = Corpus(
        expeditions=tuple(normalize_expeditions(expeditions)),
        members=tuple(normalize_members(members)),
        peaks=tuple(normalize_peaks(peaks, geocoder)),
        references=tuple(normalize_references(references)),
        summary=dict(summary or {}),
    )
    logger.info(
        f"Normalized corpus: {len(corpus.expeditions)} expeditions, {len(corpus.members)} members, "
        f"{len(corpus.peaks)} peaks, {len(corpus.references)} references."
    )
    return corpus
