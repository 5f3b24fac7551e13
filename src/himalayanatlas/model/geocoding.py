"""
Geocoordinate Resolution
========================
Assigns every peak a best-effort lat/lng through a layered fallback:

1. Exact (case-insensitive) name match against the reference table, which is
   pre-expanded with normalized variants of every reference name.
2. Substring containment, first hit in table order wins.
3. Region keyword found in the peak's location text -> region centroid with
   a small symmetric jitter.
4. Uniform sample inside a broad bounding box (the 'default' tier).

The region table here is also what the scene populator uses to bucket
unlocated expeditions, so there is only one copy of it.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, Optional

import numpy as np

from himalayanatlas.model.records import Coordinate, GeoTier

logger = logging.getLogger(__name__)

REGION_TABLE_VERSION: int = 1

# Keyword (matched inside lower-cased location text) -> centroid (lat, lng).
REGION_CENTROIDS: dict[str, tuple[float, float]] = {
    "khumbu": (27.95, 86.85),
    "everest": (27.95, 86.85),
    "annapurna": (28.55, 83.85),
    "dhaulagiri": (28.70, 83.50),
    "manaslu": (28.55, 84.55),
    "mansiri": (28.55, 84.55),
    "manang": (28.55, 84.55),
    "langtang": (28.25, 85.50),
    "jugal": (28.35, 85.75),
    "kangchenjunga": (27.70, 88.15),
    "makalu": (27.89, 87.09),
    "cho oyu": (28.09, 86.66),
    "lhotse": (27.96, 86.93),
    "ganesh": (28.35, 85.10),
    "rolwaling": (27.85, 86.50),
    "damodar": (28.70, 84.05),
    "peri": (28.85, 84.40),
    "mustang": (28.90, 83.85),
    "dolpo": (29.15, 82.90),
    "api": (30.00, 80.93),
    "saipal": (29.89, 81.50),
}

# Expedition id prefix -> region keyword, for records without any peak.
REGION_ID_PREFIXES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("EVE", "CHO", "LHO"), "khumbu"),
    (("ANN",), "annapurna"),
    (("DHA",), "dhaulagiri"),
    (("MAN",), "manaslu"),
    (("MAK",), "makalu"),
    (("KAN",), "kangchenjunga"),
)

REGION_JITTER_DEG: float = 0.05
DEFAULT_LAT_RANGE: tuple[float, float] = (28.0, 30.0)
DEFAULT_LNG_RANGE: tuple[float, float] = (84.0, 90.0)
# Placeholder position pre-processed sources write for peaks they could not place
UNKNOWN_COORDINATE: tuple[float, float] = (28.0, 84.0)

_ROMAN_SUFFIX = re.compile(r"\s+(I|II|III|IV|V|VI|VII|VIII|IX|X)$")
_MOUNT_SUFFIX = re.compile(r"\s+Mount$")
_MOUNT_PREFIX = re.compile(r"^Mount\s+")


def name_variants(name: str) -> list[str]:
    """The name itself plus its roman-numeral-less and 'Mount'-less forms."""
    variants = [
        name,
        _ROMAN_SUFFIX.sub("", name),
        _MOUNT_SUFFIX.sub("", name),
        _MOUNT_PREFIX.sub("", name),
    ]
    result: list[str] = []
    for v in variants:
        key = v.lower().strip()
        if key and key not in result:
            result.append(key)
    return result


def region_for_text(text: str) -> Optional[str]:
    """First region keyword contained in `text` (table order), if any."""
    if not text:
        return None
    lowered = text.lower()
    for keyword in REGION_CENTROIDS:
        if keyword in lowered:
            return keyword
    return None


def region_for_identifier(identifier: str) -> Optional[str]:
    for prefixes, keyword in REGION_ID_PREFIXES:
        if identifier.startswith(prefixes):
            return keyword
    return None


def _parse_float(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(str(value).strip())
    except ValueError:
        return None
    return result if np.isfinite(result) else None


def build_reference_index(rows: Iterable[Mapping[str, object]]) -> dict[str, tuple[float, float]]:
    """
    Builds the lookup table from coordinate reference rows.

    Args:
        rows: Mappings with PEAKNAME, LATITUDE and LONGITUDE keys.

    Returns:
        Ordered dict of lower-cased name variant -> (lat, lng). A later row
        overwrites the value of an earlier variant but keeps its position.
    """
    index: dict[str, tuple[float, float]] = {}
    skipped = 0
    for row in rows:
        name = str(row.get("PEAKNAME") or "").strip()
        lat = _parse_float(row.get("LATITUDE"))
        lng = _parse_float(row.get("LONGITUDE"))
        if not name or lat is None or lng is None:
            skipped += 1
            continue
        for variant in name_variants(name):
            index[variant] = (lat, lng)

    if skipped:
        logger.debug(f"Skipped {skipped} coordinate reference rows without name or position.")
    return index


class GeocoordinateResolver:
    """Resolves peak names/locations to coordinates. Total: never returns None."""

    def __init__(
        self,
        reference_index: Optional[Mapping[str, tuple[float, float]]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.reference_index: dict[str, tuple[float, float]] = dict(reference_index or {})
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()

    def resolve(self, name: str, location: str) -> Coordinate:
        peak_name = (name or "").lower().strip()

        if peak_name:
            # 1. Exact, trying the peak's own normalized variants after its raw name
            for variant in name_variants(name.strip()):
                hit = self.reference_index.get(variant)
                if hit is not None:
                    return Coordinate(hit[0], hit[1], GeoTier.EXACT)

            # 2. Substring containment; first in table order wins
            for ref_name, (lat, lng) in self.reference_index.items():
                if ref_name in peak_name or peak_name in ref_name:
                    return Coordinate(lat, lng, GeoTier.SUBSTRING)

        # 3. Region centroid with jitter
        region = region_for_text(location)
        if region is not None:
            lat, lng = REGION_CENTROIDS[region]
            return Coordinate(
                lat + (self.rng.random() - 0.5) * 2 * REGION_JITTER_DEG,
                lng + (self.rng.random() - 0.5) * 2 * REGION_JITTER_DEG,
                GeoTier.REGION,
            )

        # 4. Default box
        return Coordinate(
            float(self.rng.uniform(*DEFAULT_LAT_RANGE)),
            float(self.rng.uniform(*DEFAULT_LNG_RANGE)),
            GeoTier.DEFAULT,
        )
