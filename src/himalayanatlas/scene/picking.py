"""
Picking
Resolves a pointer position to the domain object under it.

A ray is cast from the camera through the pointer; the nearest hit among all
marker parts and occluders (the terrain surface) wins. A hit on any part of
a marker group resolves to the group's tag. Misses return None.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import numpy as np
import numpy.typing as npt
import pyvista as pv

from himalayanatlas.model.records import ExpeditionRecord, PeakRecord
from himalayanatlas.scene.camera import OrbitCamera
from himalayanatlas.scene.populator import MarkerKind, MarkerTag, SceneState

logger = logging.getLogger(__name__)

RAY_LENGTH: float = 1000.0

PeakListener = Callable[[PeakRecord], None]
ExpeditionListener = Callable[[ExpeditionRecord, Optional[PeakRecord]], None]


def pointer_to_ndc(pointer: tuple[float, float], viewport: tuple[int, int]) -> tuple[float, float]:
    """Pixel position (origin top-left) -> normalized device coordinates."""
    width, height = viewport
    x, y = pointer
    return x / max(width, 1) * 2 - 1, -(y / max(height, 1) * 2 - 1)


def _ray_near_bounds(origin: npt.NDArray, direction: npt.NDArray, mesh: pv.PolyData) -> bool:
    """Cheap bounding-sphere rejection before the exact ray trace."""
    xmin, xmax, ymin, ymax, zmin, zmax = mesh.bounds
    center = np.array([(xmin + xmax) / 2, (ymin + ymax) / 2, (zmin + zmax) / 2])
    radius = np.linalg.norm([xmax - xmin, ymax - ymin, zmax - zmin]) / 2
    to_center = center - origin
    along = float(np.dot(to_center, direction))
    if along < -radius:
        return False
    closest = np.linalg.norm(to_center - along * direction)
    return closest <= radius


def _nearest_hit(origin: npt.NDArray, direction: npt.NDArray, mesh: pv.PolyData) -> Optional[float]:
    if mesh.n_points == 0 or not _ray_near_bounds(origin, direction, mesh):
        return None
    points, _ = mesh.ray_trace(origin, origin + direction * RAY_LENGTH)
    points = np.asarray(points).reshape(-1, 3)
    if len(points) == 0:
        return None
    return float(np.min(np.linalg.norm(points - origin, axis=1)))


class Picker:
    def __init__(
        self,
        scene: SceneState,
        camera: OrbitCamera,
        occluders: Iterable[pv.PolyData] = (),
    ) -> None:
        self.scene = scene
        self.camera = camera
        self.occluders: list[pv.PolyData] = list(occluders)
        self.on_peak_selected: Optional[PeakListener] = None
        self.on_expedition_selected: Optional[ExpeditionListener] = None

    def pick(self, pointer: tuple[float, float], viewport: tuple[int, int]) -> Optional[MarkerTag]:
        width, height = viewport
        ndc_x, ndc_y = pointer_to_ndc(pointer, viewport)
        origin, direction = self.camera.ray(ndc_x, ndc_y, width / max(height, 1))

        best_distance = np.inf
        best_tag: Optional[MarkerTag] = None

        for marker in self.scene.markers.values():
            for part in marker.parts:
                distance = _nearest_hit(origin, direction, part.mesh)
                if distance is not None and distance < best_distance:
                    best_distance = distance
                    best_tag = marker.tag

        for occluder in self.occluders:
            distance = _nearest_hit(origin, direction, occluder)
            if distance is not None and distance < best_distance:
                best_distance = distance
                best_tag = None

        return best_tag

    def hover(self, pointer: tuple[float, float], viewport: tuple[int, int]) -> bool:
        return self.pick(pointer, viewport) is not None

    def select(self, pointer: tuple[float, float], viewport: tuple[int, int]) -> Optional[MarkerTag]:
        """Picks and notifies the matching listener."""
        tag = self.pick(pointer, viewport)
        if tag is None:
            return None

        if tag.kind == MarkerKind.PEAK and tag.peak is not None:
            logger.debug(f"Peak selected: {tag.peak.peak_id}")
            if self.on_peak_selected:
                self.on_peak_selected(tag.peak)
        elif tag.kind == MarkerKind.EXPEDITION and tag.expedition is not None:
            logger.debug(f"Expedition selected: {tag.expedition.expedition_id}")
            if self.on_expedition_selected:
                self.on_expedition_selected(tag.expedition, tag.peak)
        return tag
