"""
Domain Records
==============
Typed, immutable entities produced by the normalizer.

Why is this file needed?
------------------------
1. Typing: Raw rows are loose key -> string mappings. Everything downstream
   (filters, statistics, scene) works on these dataclasses instead.
2. Immutability: Records are built once per data load. Filtering produces
   new collections that reference the same objects, never copies.

Classes:
    Season: Expedition season code (1-4 or unknown).
    GeoTier: Which fallback tier produced a coordinate.
    Coordinate: Resolved lat/lng plus its tier.
    ExpeditionRecord, MemberRecord, PeakRecord, ReferenceRecord: Entities.
    Corpus: The normalized collections of one data load.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum, StrEnum
from typing import Optional


class Season(IntEnum):
    UNKNOWN = 0
    WINTER = 1
    SUMMER = 2
    AUTUMN = 3
    SPRING = 4

    @property
    def label(self) -> str:
        return SEASON_LABELS[self]


SEASON_LABELS: dict[Season, str] = {
    Season.UNKNOWN: "Unknown",
    Season.WINTER: "Winter (Dec-Feb)",
    Season.SUMMER: "Summer/Monsoon (Jun-Aug)",
    Season.AUTUMN: "Autumn (Sep-Nov)",
    Season.SPRING: "Spring (Mar-May)",
}


class GeoTier(StrEnum):
    """Fallback tier that produced a coordinate, best first."""
    EXACT = "exact"
    SUBSTRING = "substring"
    REGION = "region"
    DEFAULT = "default"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float
    tier: GeoTier = GeoTier.EXACT

    @property
    def is_default(self) -> bool:
        """True for the 'we don't know' uniform-random tier."""
        return self.tier == GeoTier.DEFAULT


@dataclass(frozen=True)
class ExpeditionRecord:
    expedition_id: str
    peak_id: str
    year: int
    season: Season = Season.UNKNOWN
    nation: str = ""
    success: bool = False
    deaths: int = 0
    oxygen_used: bool = False
    total_members: int = 0
    summit_members: int = 0
    hired_members: int = 0
    member_deaths: int = 0
    hired_deaths: int = 0
    base_camp_date: Optional[date] = None
    summit_date: Optional[date] = None
    termination_date: Optional[date] = None

    @property
    def is_fatal(self) -> bool:
        return self.deaths > 0


@dataclass(frozen=True)
class MemberRecord:
    member_id: str
    expedition_id: str
    first_name: str = ""
    last_name: str = ""
    sex: str = ""
    age: Optional[int] = None
    citizenship: str = ""
    success: bool = False
    death: bool = False
    leader: bool = False
    hired: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class PeakRecord:
    peak_id: str
    name: str
    location: str
    height_m: int
    first_ascent_year: Optional[int] = None
    open: bool = False
    coordinate: Optional[Coordinate] = None


@dataclass(frozen=True)
class ReferenceRecord:
    reference_id: str
    expedition_id: str
    author: str = ""
    title: str = ""
    year: Optional[int] = None


@dataclass(frozen=True)
class Corpus:
    """All normalized collections of a single data load."""
    expeditions: tuple[ExpeditionRecord, ...] = ()
    members: tuple[MemberRecord, ...] = ()
    peaks: tuple[PeakRecord, ...] = ()
    references: tuple[ReferenceRecord, ...] = ()
    # Precomputed summary shipped with the consolidated source, if any
    summary: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_empty(self) -> bool:
        return not self.expeditions
