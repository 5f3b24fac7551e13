"""
Orbit Camera
Spherical camera state driven by drag/scroll deltas. The position is derived
from (azimuth, elevation, distance) on every frame; no inertia is kept.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

ROTATE_SPEED: float = 0.01
ZOOM_SPEED: float = 0.05
MIN_DISTANCE: float = 15.0
MAX_DISTANCE: float = 150.0
MAX_ELEVATION: float = math.pi / 2
CAMERA_LIFT: float = 10.0
FIELD_OF_VIEW_DEG: float = 75.0

WORLD_UP = np.array([0.0, 1.0, 0.0])


def _normalized(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    n = np.linalg.norm(v)
    return v / n if n > 0 else v


@dataclass
class OrbitCamera:
    azimuth: float = 1.2
    elevation: float = 0.4
    distance: float = 60.0
    fov_deg: float = FIELD_OF_VIEW_DEG

    def update(self, drag_delta: tuple[float, float] = (0.0, 0.0), scroll_delta: float = 0.0) -> None:
        """
        Args:
            drag_delta: Pointer movement in pixels (dx, dy) since the last event.
            scroll_delta: Wheel delta, positive zooms out.
        """
        dx, dy = drag_delta
        self.azimuth += dx * ROTATE_SPEED
        self.elevation = max(-MAX_ELEVATION, min(MAX_ELEVATION, self.elevation + dy * ROTATE_SPEED))
        self.distance = max(MIN_DISTANCE, min(MAX_DISTANCE, self.distance + scroll_delta * ZOOM_SPEED))

    @property
    def target(self) -> npt.NDArray[np.float64]:
        return np.zeros(3)

    @property
    def position(self) -> npt.NDArray[np.float64]:
        cos_el = math.cos(self.elevation)
        return np.array([
            math.cos(self.azimuth) * cos_el * self.distance,
            math.sin(self.elevation) * self.distance + CAMERA_LIFT,
            math.sin(self.azimuth) * cos_el * self.distance,
        ])

    def basis(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """(forward, right, up) unit vectors of the view."""
        forward = _normalized(self.target - self.position)
        right = np.cross(forward, WORLD_UP)
        if np.linalg.norm(right) < 1e-9:
            # looking straight up/down, take right from the azimuth
            right = np.array([-math.sin(self.azimuth), 0.0, math.cos(self.azimuth)])
        right = _normalized(right)
        up = np.cross(right, forward)
        return forward, right, up

    def ray(self, ndc_x: float, ndc_y: float, aspect: float) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """World ray (origin, unit direction) through a point in normalized device coordinates."""
        forward, right, up = self.basis()
        tan_half = math.tan(math.radians(self.fov_deg) / 2)
        direction = forward + ndc_x * tan_half * aspect * right + ndc_y * tan_half * up
        return self.position, _normalized(direction)
