"""
Terrain Builder
===============
Converts an elevation raster into a colored height field and answers surface
height queries in world space.

World convention: y is up, the terrain spans x, z in [-size/2, size/2].
North (the raster's top row) is +z. The elevation grid is indexed
[row over z, column over x]; vertex (i, j) sits at
x = -size/2 + j * cell, z = -size/2 + i * cell.
"""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import numpy.typing as npt
import pyvista as pv

from himalayanatlas import config

logger = logging.getLogger(__name__)

TERRAIN_SIZE: float = 120.0
TERRAIN_SEGMENTS: int = 64
HEIGHT_SCALE: float = 25.0
VERTICAL_OFFSET: float = -5.0
HEIGHT_GAMMA: float = 0.7
SURFACE_OFFSET: float = 1.5
DEFAULT_HEIGHT: float = 8.0
# Share of the terrain used when projecting lat/lng, keeps markers off the edge
PROJECTION_MARGIN: float = 0.9

PLACEHOLDER_OFFSET: float = -10.0
PLACEHOLDER_COLOR: tuple[float, float, float] = (0x65 / 255, 0x43 / 255, 0x21 / 255)

# (lower bound of normalized height, RGB), checked top down
ELEVATION_BANDS: tuple[tuple[float, tuple[float, float, float]], ...] = (
    (0.8, (0.95, 0.95, 1.0)),   # snow
    (0.6, (0.6, 0.6, 0.65)),    # rock / ice
    (0.4, (0.4, 0.3, 0.2)),     # rock
    (-math.inf, (0.3, 0.25, 0.15)),  # lower areas
)


@dataclass(frozen=True)
class TerrainBounds:
    """Geographic extent in degrees."""
    west: float = 83.0
    east: float = 90.0
    south: float = 26.5
    north: float = 29.5

    @classmethod
    def from_dict(cls, data: dict) -> TerrainBounds:
        bounds = cls(
            west=float(data["west"]),
            east=float(data["east"]),
            south=float(data["south"]),
            north=float(data["north"]),
        )
        if bounds.east <= bounds.west or bounds.north <= bounds.south:
            raise ValueError(f"Degenerate terrain bounds: {data}")
        return bounds


@dataclass
class TerrainField:
    """Elevation grid plus the geographic box it represents. Read-only outside this module."""
    elevation: npt.NDArray[np.float64]  # (segments + 1, segments + 1)
    colors: npt.NDArray[np.float64]     # (segments + 1, segments + 1, 3), 0-1 RGB
    bounds: TerrainBounds = field(default_factory=TerrainBounds)
    size: float = TERRAIN_SIZE
    segments: int = TERRAIN_SEGMENTS
    is_placeholder: bool = False

    @property
    def cell_size(self) -> float:
        return self.size / self.segments

    def vertex_axes(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """World x (columns) and z (rows) coordinates of the grid vertices."""
        axis = np.linspace(-self.size / 2, self.size / 2, self.segments + 1)
        return axis, axis.copy()

    def height_at(self, x: float, z: float) -> float:
        return height_at(self, x, z)

    def project(self, lat: float, lng: float) -> tuple[float, float]:
        return project(self.bounds, lat, lng, self.size)


def _band_colors(normalized: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    colors = np.empty(normalized.shape + (3,), dtype=np.float64)
    assigned = np.zeros(normalized.shape, dtype=bool)
    for lower, rgb in ELEVATION_BANDS:
        mask = (normalized > lower) & ~assigned
        colors[mask] = rgb
        assigned |= mask
    return colors


def _as_gray(raster: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """First channel of the raster scaled to 0-1."""
    arr = np.asarray(raster)
    if arr.ndim == 3:
        arr = arr[..., 0]
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError(f"Expected a 2D raster, got shape {np.shape(raster)}.")
    gray = arr.astype(np.float64)
    if np.issubdtype(arr.dtype, np.integer) or np.nanmax(gray) > 1.0:
        gray = gray / 255.0
    return np.clip(np.nan_to_num(gray, nan=0.0), 0.0, 1.0)


def build(
    raster: npt.ArrayLike,
    bounds: Optional[TerrainBounds] = None,
    size: float = TERRAIN_SIZE,
    segments: int = TERRAIN_SEGMENTS,
) -> TerrainField:
    """
    Samples `raster` at every grid vertex (nearest pixel) and builds the field.

    Args:
        raster: (H, W) or (H, W, C) array, row 0 = north. Integer rasters are
            read as 0-255, float rasters as 0-1.
        bounds: Geographic extent of the raster.
    """
    gray = _as_gray(raster)
    h_px, w_px = gray.shape
    half = size / 2

    axis = np.linspace(-half, half, segments + 1)
    x_grid, z_grid = np.meshgrid(axis, axis)  # [row over z, col over x]

    u = np.clip((x_grid + half) / size * w_px, 0, w_px - 1)
    v = np.clip((half - z_grid) / size * h_px, 0, h_px - 1)
    samples = gray[np.floor(v).astype(int), np.floor(u).astype(int)]

    normalized = samples ** HEIGHT_GAMMA
    elevation = normalized * HEIGHT_SCALE + VERTICAL_OFFSET

    logger.info(f"Built terrain {segments}x{segments} from {w_px}x{h_px} raster "
                f"(elevation {elevation.min():.2f} .. {elevation.max():.2f}).")
    return TerrainField(
        elevation=elevation,
        colors=_band_colors((elevation - VERTICAL_OFFSET) / HEIGHT_SCALE),
        bounds=bounds or TerrainBounds(),
        size=size,
        segments=segments,
    )


def build_placeholder(
    bounds: Optional[TerrainBounds] = None,
    rng: Optional[np.random.Generator] = None,
    size: float = TERRAIN_SIZE,
    segments: int = TERRAIN_SEGMENTS,
) -> TerrainField:
    """Rolling hills used when no raster is available."""
    rng = rng if rng is not None else np.random.default_rng()
    axis = np.linspace(-size / 2, size / 2, segments + 1)
    x_grid, z_grid = np.meshgrid(axis, axis)
    distance = np.hypot(x_grid, z_grid)

    elevation = np.sin(distance * 0.05) * 3 + rng.random(distance.shape) * 2 + PLACEHOLDER_OFFSET
    colors = np.broadcast_to(np.array(PLACEHOLDER_COLOR), distance.shape + (3,)).copy()

    logger.info("Built placeholder terrain.")
    return TerrainField(
        elevation=elevation,
        colors=colors,
        bounds=bounds or TerrainBounds(),
        size=size,
        segments=segments,
        is_placeholder=True,
    )


def height_at(terrain: Optional[TerrainField], x: float, z: float) -> float:
    """
    Surface height under world (x, z), lifted by SURFACE_OFFSET.

    Never raises: no terrain, non-finite input or a point outside the extent
    all give DEFAULT_HEIGHT.
    """
    if terrain is None:
        return DEFAULT_HEIGHT
    try:
        gx = float(x) + terrain.size / 2
        gz = float(z) + terrain.size / 2
    except (TypeError, ValueError):
        return DEFAULT_HEIGHT
    if not (math.isfinite(gx) and math.isfinite(gz)):
        return DEFAULT_HEIGHT
    if gx < 0 or gx >= terrain.size or gz < 0 or gz >= terrain.size:
        return DEFAULT_HEIGHT

    last = terrain.segments - 1
    col = max(0, min(last, int(gx // terrain.cell_size)))
    row = max(0, min(last, int(gz // terrain.cell_size)))
    return float(terrain.elevation[row, col]) + SURFACE_OFFSET


def project(bounds: TerrainBounds, lat: float, lng: float, size: float = TERRAIN_SIZE) -> tuple[float, float]:
    """Linear lat/lng -> world (x, z), clamped to the bounds."""
    lng_norm = min(1.0, max(0.0, (lng - bounds.west) / (bounds.east - bounds.west)))
    lat_norm = min(1.0, max(0.0, (lat - bounds.south) / (bounds.north - bounds.south)))
    x = (lng_norm - 0.5) * size * PROJECTION_MARGIN
    z = (lat_norm - 0.5) * size * PROJECTION_MARGIN
    return x, z


def to_polydata(terrain: TerrainField) -> pv.PolyData:
    """Triangulable quad surface with per-vertex RGB in point_data['colors']."""
    n = terrain.segments + 1
    xs, zs = terrain.vertex_axes()
    x_grid, z_grid = np.meshgrid(xs, zs)
    points = np.column_stack([x_grid.ravel(), terrain.elevation.ravel(), z_grid.ravel()])

    ii, jj = np.meshgrid(np.arange(terrain.segments), np.arange(terrain.segments), indexing='ij')
    a = (ii * n + jj).ravel()
    faces = np.column_stack([np.full_like(a, 4), a, a + 1, a + n + 1, a + n]).ravel()

    surface = pv.PolyData(points, faces)
    surface.point_data["colors"] = (terrain.colors.reshape(-1, 3) * 255).astype(np.uint8)
    return surface


# ------------------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------------------

def load_raster(filepath: str) -> npt.NDArray:
    """Reads an image as an (H, W[, C]) array with row 0 at the top."""
    image = pv.read(filepath)
    scalars = np.asarray(image.active_scalars)
    width, height = int(image.dimensions[0]), int(image.dimensions[1])
    arr = scalars.reshape(height, width, -1)
    # VTK images start at the bottom-left corner
    return np.flipud(arr)


def load_bounds(filepath: str) -> TerrainBounds:
    with open(filepath, mode='r', encoding='utf-8') as f:
        info = json.load(f)
    return TerrainBounds.from_dict(info.get("bounds", info))


def load_terrain(data_dir: Optional[str] = None, rng: Optional[np.random.Generator] = None) -> TerrainField:
    """Builds the terrain from the data directory, degrading to the placeholder."""
    data_dir = data_dir or config.DATA_PATH
    bounds = TerrainBounds()
    try:
        bounds = load_bounds(os.path.join(data_dir, config.TERRAIN_INFO_FILE))
        raster = load_raster(os.path.join(data_dir, config.HEIGHTMAP_FILE))
        return build(raster, bounds)
    except Exception as e:
        logger.warning(f"Failed to load terrain data, using placeholder: {e}")
        return build_placeholder(bounds, rng)
