"""
Scene Populator
===============
Owns the scene state (all placed markers) and turns a FilteredView into
marker additions/removals.

Why is this file needed?
------------------------
1. Placement: Peaks and expeditions are placed on the terrain from resolved
   coordinates, or from deterministic fallback layouts when a record cannot
   be located.
2. Testability: `repopulate` returns a SceneDiff, so placement can be checked
   without a render window. The 3D widget only mirrors diffs into actors.

Classes:
    Marker, MarkerTag, MarkerPart: One placed object and its pickable meshes.
    SceneState: The marker collection.
    SceneDiff: What one repopulation added and removed.
    ScenePopulator: The placement engine.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional

import numpy as np
import pyvista as pv

from himalayanatlas.model.filters import FilteredView
from himalayanatlas.model.geocoding import REGION_CENTROIDS, region_for_identifier, region_for_text
from himalayanatlas.model.peak_identity import DEFAULT_RESOLVER, PeakIdentityResolver
from himalayanatlas.model.records import ExpeditionRecord, PeakRecord
from himalayanatlas.scene.terrain import TERRAIN_SIZE, TerrainBounds, TerrainField, height_at, project

logger = logging.getLogger(__name__)

MAX_PEAK_MARKERS: int = 20
MIN_PEAK_MARKER_HEIGHT: int = 6000
LABELED_PEAK_HEIGHT: int = 7000
EVEREST_HEIGHT_M: int = 8848

PEAK_STEM_HEIGHT: float = 12.0
PEAK_STEM_RADIUS: float = 0.1
PEAK_STEM_OFFSET: float = PEAK_STEM_HEIGHT / 2
FLAG_WIDTH: float = 2.0
FLAG_HEIGHT: float = 1.2

EXPEDITION_RADIUS: float = 1.2
EXPEDITION_CLEARANCE: float = 1.0
EXPEDITION_OFFSET: float = EXPEDITION_CLEARANCE + EXPEDITION_RADIUS

COORDINATE_JITTER: float = 1.5
PEAK_MARKER_JITTER: float = 2.0
GOLDEN_TURN: float = 0.618


class MarkerKind(StrEnum):
    PEAK = "peak"
    EXPEDITION = "expedition"


class Outcome(StrEnum):
    SUCCESS = "success"
    FATAL = "fatal"
    ATTEMPTED = "attempted"


OUTCOME_COLORS: dict[Outcome, str] = {
    Outcome.SUCCESS: "#00ff00",
    Outcome.FATAL: "#ff0000",
    Outcome.ATTEMPTED: "#ff8800",
}


def outcome_of(expedition: ExpeditionRecord) -> Outcome:
    """Success wins over fatality; exactly one category per expedition."""
    if expedition.success:
        return Outcome.SUCCESS
    if expedition.is_fatal:
        return Outcome.FATAL
    return Outcome.ATTEMPTED


def peak_color(peak: PeakRecord) -> str:
    ratio = peak.height_m / EVEREST_HEIGHT_M
    if peak.name == "Everest" or peak.height_m >= EVEREST_HEIGHT_M:
        return "#ffd700"
    if ratio > 0.85:
        return "#ff4444"
    if ratio > 0.7:
        return "#cc3333"
    if ratio > 0.5:
        return "#4444ff"
    return "#44ff44"


def peak_rank(peak: PeakRecord) -> str:
    if peak.height_m >= EVEREST_HEIGHT_M:
        return "1st (Highest peak in the world)"
    if peak.height_m >= 8000:
        return "Among the 14 eight-thousanders"
    if peak.height_m >= 7000:
        return "Major Himalayan peak"
    return "Significant peak"


@dataclass(frozen=True)
class MarkerTag:
    """Domain object a marker stands for."""
    kind: MarkerKind
    peak: Optional[PeakRecord] = None
    expedition: Optional[ExpeditionRecord] = None


@dataclass
class MarkerPart:
    name: str
    mesh: pv.PolyData


@dataclass
class Marker:
    key: str
    tag: MarkerTag
    position: tuple[float, float, float]
    color: str
    parts: list[MarkerPart] = field(default_factory=list)
    label: Optional[str] = None

    @property
    def kind(self) -> MarkerKind:
        return self.tag.kind


@dataclass
class SceneState:
    markers: dict[str, Marker] = field(default_factory=dict)

    def of_kind(self, kind: MarkerKind) -> list[Marker]:
        return [m for m in self.markers.values() if m.kind == kind]

    def peak_marker(self, peak_id: str) -> Optional[Marker]:
        return self.markers.get(_peak_key(peak_id))


@dataclass
class SceneDiff:
    added: list[Marker] = field(default_factory=list)
    removed: list[Marker] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def _peak_key(peak_id: str) -> str:
    return f"{MarkerKind.PEAK}:{peak_id}"


def _expedition_key(expedition: ExpeditionRecord, index: int) -> str:
    return f"{MarkerKind.EXPEDITION}:{expedition.expedition_id}:{index}"


# ------------------------------------------------------------------------------
# Marker geometry
# ------------------------------------------------------------------------------

def _pennant(origin: tuple[float, float, float]) -> pv.PolyData:
    ox, oy, oz = origin
    h = FLAG_HEIGHT / 2
    outline = [
        (0.0, -h), (FLAG_WIDTH * 0.7, -h), (FLAG_WIDTH, 0.0), (FLAG_WIDTH * 0.7, h), (0.0, h),
    ]
    points = np.array([(ox + px, oy + py, oz) for px, py in outline], dtype=np.float64)
    return pv.PolyData(points, faces=np.array([len(outline), 0, 1, 2, 3, 4]))


def _peak_parts(position: tuple[float, float, float]) -> list[MarkerPart]:
    x, y, z = position
    stem = pv.Cylinder(
        center=(x, y, z), direction=(0.0, 1.0, 0.0),
        radius=PEAK_STEM_RADIUS, height=PEAK_STEM_HEIGHT, resolution=8,
    )
    flag = _pennant((x, y + PEAK_STEM_HEIGHT / 2, z))
    return [MarkerPart("stem", stem), MarkerPart("flag", flag)]


def _expedition_parts(position: tuple[float, float, float]) -> list[MarkerPart]:
    sphere = pv.Sphere(radius=EXPEDITION_RADIUS, center=position, theta_resolution=16, phi_resolution=16)
    return [MarkerPart("sphere", sphere)]


# ------------------------------------------------------------------------------
# Populator
# ------------------------------------------------------------------------------

class ScenePopulator:
    def __init__(
        self,
        terrain: Optional[TerrainField] = None,
        resolver: PeakIdentityResolver = DEFAULT_RESOLVER,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.terrain: Optional[TerrainField] = terrain
        self.resolver: PeakIdentityResolver = resolver
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.state: SceneState = SceneState()

    # --- geometry helpers ---

    @property
    def _bounds(self) -> TerrainBounds:
        return self.terrain.bounds if self.terrain is not None else TerrainBounds()

    @property
    def _size(self) -> float:
        return self.terrain.size if self.terrain is not None else TERRAIN_SIZE

    def height_at(self, x: float, z: float) -> float:
        return height_at(self.terrain, x, z)

    def project(self, lat: float, lng: float) -> tuple[float, float]:
        return project(self._bounds, lat, lng, self._size)

    def _jitter(self, amplitude: float) -> float:
        return (self.rng.random() - 0.5) * amplitude

    def _spiral(self, index: int, region: Optional[str], base: float, step: float, wrap: int) -> tuple[float, float]:
        """Golden-angle spiral around a region bucket (or the origin)."""
        angle = index * GOLDEN_TURN * math.pi * 2
        if region is not None:
            cx, cz = self.project(*REGION_CENTROIDS[region])
            radius = 2 + (index % 7) * 1.5
        else:
            cx, cz = 0.0, 0.0
            radius = base + (index % wrap) * step
        return cx + math.cos(angle) * radius, cz + math.sin(angle) * radius

    # --- selection ---

    @staticmethod
    def major_peaks(peaks: tuple[PeakRecord, ...]) -> list[PeakRecord]:
        """Highest peaks with a located (non-default) coordinate."""
        located = [
            p for p in peaks
            if p.coordinate is not None and not p.coordinate.is_default and p.height_m > MIN_PEAK_MARKER_HEIGHT
        ]
        located.sort(key=lambda p: p.height_m, reverse=True)
        return located[:MAX_PEAK_MARKERS]

    def find_peak(self, peak_id: str, peaks_by_id: dict[str, PeakRecord]) -> Optional[PeakRecord]:
        peak = peaks_by_id.get(peak_id)
        if peak is None:
            peak = peaks_by_id.get(self.resolver.canonical_of(peak_id))
        return peak

    # --- placement ---

    def place_peak(self, peak: PeakRecord) -> Marker:
        x, z = self.project(peak.coordinate.lat, peak.coordinate.lng)
        position = (x, self.height_at(x, z) + PEAK_STEM_OFFSET, z)
        return Marker(
            key=_peak_key(peak.peak_id),
            tag=MarkerTag(MarkerKind.PEAK, peak=peak),
            position=position,
            color=peak_color(peak),
            parts=_peak_parts(position),
            label=peak.name if peak.height_m > LABELED_PEAK_HEIGHT else None,
        )

    def expedition_xz(self, expedition: ExpeditionRecord, peak: Optional[PeakRecord], index: int) -> tuple[float, float]:
        if peak is not None:
            if peak.coordinate is not None and not peak.coordinate.is_default:
                x, z = self.project(peak.coordinate.lat, peak.coordinate.lng)
                return x + self._jitter(COORDINATE_JITTER), z + self._jitter(COORDINATE_JITTER)

            placed = self.state.peak_marker(peak.peak_id)
            if placed is not None:
                px, _, pz = placed.position
                return px + self._jitter(PEAK_MARKER_JITTER), pz + self._jitter(PEAK_MARKER_JITTER)

            return self._spiral(index, region_for_text(peak.location), base=5, step=2, wrap=10)

        region = region_for_identifier(expedition.expedition_id)
        return self._spiral(index, region, base=8, step=2, wrap=12)

    def place_expedition(self, expedition: ExpeditionRecord, peak: Optional[PeakRecord], index: int) -> Marker:
        x, z = self.expedition_xz(expedition, peak, index)
        position = (x, self.height_at(x, z) + EXPEDITION_OFFSET, z)
        return Marker(
            key=_expedition_key(expedition, index),
            tag=MarkerTag(MarkerKind.EXPEDITION, peak=peak, expedition=expedition),
            position=position,
            color=OUTCOME_COLORS[outcome_of(expedition)],
            parts=_expedition_parts(position),
        )

    def repopulate(self, view: FilteredView) -> SceneDiff:
        """
        Replaces every expedition marker with the active year's set, adding
        peak markers only for peaks not already on the scene.
        """
        diff = SceneDiff()

        for marker in self.state.of_kind(MarkerKind.EXPEDITION):
            del self.state.markers[marker.key]
            diff.removed.append(marker)

        for peak in self.major_peaks(view.peaks):
            if self.state.peak_marker(peak.peak_id) is None:
                marker = self.place_peak(peak)
                self.state.markers[marker.key] = marker
                diff.added.append(marker)

        if view.year:
            peaks_by_id = {p.peak_id: p for p in view.peaks}
            visible = [e for e in view.expeditions if e.year == view.year]
            for index, expedition in enumerate(visible):
                marker = self.place_expedition(expedition, self.find_peak(expedition.peak_id, peaks_by_id), index)
                self.state.markers[marker.key] = marker
                diff.added.append(marker)

        logger.debug(f"Scene diff: +{len(diff.added)} / -{len(diff.removed)} markers.")
        return diff

    def clear(self) -> SceneDiff:
        """Removes every marker (teardown or a new corpus)."""
        diff = SceneDiff(removed=list(self.state.markers.values()))
        self.state.markers.clear()
        return diff
