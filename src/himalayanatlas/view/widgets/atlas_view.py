"""
3D Atlas Widget (PyVista Wrapper)
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import QEvent, QObject, QPointF, Qt, QTimer, Signal
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import QVBoxLayout, QWidget
from pyvistaqt import QtInteractor
import pyvista as pv

from himalayanatlas.model.filters import FilteredView
from himalayanatlas.scene.camera import OrbitCamera
from himalayanatlas.scene.picking import Picker
from himalayanatlas.scene.populator import Marker, SceneDiff, ScenePopulator
from himalayanatlas.scene.terrain import TerrainField, to_polydata

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = "#1a1a2e"
FRAME_INTERVAL_MS = 16
# Pointer travel (px) below which a press/release counts as a click
CLICK_TOLERANCE_PX = 4.0


class AtlasView(QWidget):
    peak_selected = Signal(object)
    expedition_selected = Signal(object, object)

    def __init__(self, populator: Optional[ScenePopulator] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)
        self._init_plotter()

        # --- Scene ---
        self.populator: ScenePopulator = populator or ScenePopulator()
        self.camera = OrbitCamera()
        self.picker = Picker(self.populator.state, self.camera)
        self.picker.on_peak_selected = self.peak_selected.emit
        self.picker.on_expedition_selected = self.expedition_selected.emit

        # --- Actors state ---
        self._terrain_actor: Optional[pv.Actor] = None
        self._marker_actors: dict[str, list] = {}

        # --- Pointer state ---
        self._press_pos: Optional[QPointF] = None
        self._last_pos: Optional[QPointF] = None
        self._dragged: bool = False
        self.plotter.installEventFilter(self)

        # --- Render loop ---
        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._render_frame)
        self._torn_down: bool = False

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def set_terrain(self, terrain: TerrainField) -> None:
        """Replaces the terrain surface. Marker heights follow on the next repopulation."""
        if self._terrain_actor is not None:
            self.plotter.remove_actor(self._terrain_actor)
            self._terrain_actor = None

        surface = to_polydata(terrain)
        self._terrain_actor = self.plotter.add_mesh(
            surface, scalars="colors", rgb=True, smooth_shading=True, pickable=False, name="terrain"
        )
        self.populator.terrain = terrain
        self.picker.occluders = [surface]
        logger.info(f"Terrain set (placeholder={terrain.is_placeholder}).")

    def show_view(self, view: FilteredView) -> SceneDiff:
        """Repopulates markers for the view and mirrors the diff into actors."""
        diff = self.populator.repopulate(view)
        self.apply_diff(diff)
        return diff

    def clear_markers(self) -> None:
        self.apply_diff(self.populator.clear())

    def apply_diff(self, diff: SceneDiff) -> None:
        for marker in diff.removed:
            for actor in self._marker_actors.pop(marker.key, []):
                self.plotter.remove_actor(actor)
        for marker in diff.added:
            self._marker_actors[marker.key] = self._add_marker_actors(marker)

    def start_render_loop(self) -> None:
        if self._torn_down or self._frame_timer.isActive():
            return
        self._frame_timer.start()

    def stop_render_loop(self) -> None:
        """Cancels the per-frame callback. Idempotent."""
        if self._frame_timer.isActive():
            self._frame_timer.stop()

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background(BACKGROUND_COLOR)
        self.plotter.enable_lightkit()

    def _add_marker_actors(self, marker: Marker) -> list:
        actors = [
            self.plotter.add_mesh(part.mesh, color=marker.color, pickable=False, name=f"{marker.key}/{part.name}")
            for part in marker.parts
        ]
        if marker.label:
            actors.append(self.plotter.add_point_labels(
                np.array([marker.position]) + np.array([0.0, 1.5, 0.0]),
                [marker.label],
                font_size=12,
                text_color="white",
                shape_color="black",
                shape_opacity=0.9,
                always_visible=True,
                name=f"{marker.key}/label",
            ))
        return actors

    def _render_frame(self) -> None:
        """Per-frame callback: apply camera state and draw."""
        if self._torn_down:
            return
        cam = self.plotter.camera
        cam.position = tuple(self.camera.position)
        cam.focal_point = tuple(self.camera.target)
        cam.up = (0.0, 1.0, 0.0)
        cam.view_angle = self.camera.fov_deg
        self.plotter.render()

    def _viewport(self) -> tuple[int, int]:
        return int(self.plotter.width()), int(self.plotter.height())

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        etype = event.type()
        if etype == QEvent.Type.MouseButtonPress and event.button() == Qt.MouseButton.LeftButton:
            self._press_pos = event.position()
            self._last_pos = event.position()
            self._dragged = False
            return True

        if etype == QEvent.Type.MouseMove:
            pos = event.position()
            if self._last_pos is not None:
                delta = pos - self._last_pos
                self.camera.update(drag_delta=(delta.x(), delta.y()))
                self._last_pos = pos
                if (pos - self._press_pos).manhattanLength() > CLICK_TOLERANCE_PX:
                    self._dragged = True
                self.plotter.setCursor(Qt.CursorShape.ClosedHandCursor)
            else:
                hovering = self.picker.hover((pos.x(), pos.y()), self._viewport())
                self.plotter.setCursor(
                    Qt.CursorShape.PointingHandCursor if hovering else Qt.CursorShape.OpenHandCursor
                )
            return True

        if etype == QEvent.Type.MouseButtonRelease and event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            if self._press_pos is not None and not self._dragged:
                self.picker.select((pos.x(), pos.y()), self._viewport())
            self._press_pos = None
            self._last_pos = None
            self.plotter.setCursor(Qt.CursorShape.OpenHandCursor)
            return True

        if etype == QEvent.Type.Wheel:
            # Qt reports +120 per notch away from the user; that zooms in
            self.camera.update(scroll_delta=-event.angleDelta().y())
            return True

        return super().eventFilter(obj, event)

    def closeEvent(self, event: QCloseEvent) -> None:
        self._torn_down = True
        self.stop_render_loop()
        self.plotter.close()
        super().closeEvent(event)
