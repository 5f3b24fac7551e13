"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the side panels
(filters and analytics), the 3D atlas and the Status Bar.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects the loader, the year playback, the filter panel and
   pointer selection to the AtlasState, and pushes every state change into the 3D scene.
"""
import logging
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QLabel, QMainWindow, QMessageBox, QProgressBar, QSplitter, QStackedWidget, QTabBar, QVBoxLayout, QWidget
)
from PySide6.QtGui import QAction, QActionGroup, QCloseEvent

from himalayanatlas import config
from himalayanatlas.controller.playback import PLAYBACK_SPEEDS, YearPlayback
from himalayanatlas.controller.workers import DataLoadWorker
from himalayanatlas.model.filters import FilterCriteria, year_range
from himalayanatlas.model.records import Corpus, ExpeditionRecord, PeakRecord
from himalayanatlas.model.state import AtlasState
from himalayanatlas.scene.populator import ScenePopulator, peak_rank
from himalayanatlas.scene.terrain import load_terrain
from himalayanatlas.view.tabs.tab_analytics import AnalyticsPanel
from himalayanatlas.view.tabs.tab_filters import FilterControlPanel
from himalayanatlas.view.widgets.atlas_view import AtlasView

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Himalayan Atlas"


class MainWindow(QMainWindow):
    def __init__(self, atlas_state: AtlasState, data_dir: Optional[str] = None) -> None:
        super().__init__()
        self.atlas: AtlasState = atlas_state
        self.data_dir: str = data_dir or config.DATA_PATH
        self.worker: Optional[DataLoadWorker] = None

        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(splitter)

        # --- LEFT SIDE: Tab Bar + Panels (Stacked) ---
        side_widget = QWidget()
        side_layout = QVBoxLayout(side_widget)
        side_layout.setContentsMargins(0, 0, 0, 0)

        self.tab_bar = QTabBar()
        self.tab_bar.setExpanding(True)
        self.tab_bar.addTab("Filters")
        self.tab_bar.addTab("Analytics")
        side_layout.addWidget(self.tab_bar)

        self.controls_stack = QStackedWidget()
        self.filter_panel = FilterControlPanel()
        self.analytics_panel = AnalyticsPanel(self.atlas.resolver)
        # Order must match Tab Bar order
        self.controls_stack.addWidget(self.filter_panel)  # Index 0
        self.controls_stack.addWidget(self.analytics_panel)  # Index 1
        side_layout.addWidget(self.controls_stack)

        splitter.addWidget(side_widget)

        # --- RIGHT SIDE: 3D VIEW ---
        self.visualizer = AtlasView(ScenePopulator(resolver=self.atlas.resolver))
        splitter.addWidget(self.visualizer)
        self.visualizer.set_terrain(load_terrain(self.data_dir))

        # 1 part sidebar : 4 parts 3D view
        splitter.setSizes([320, 1080])

        # --- STATUS BAR ---
        self.status_label = QLabel("")
        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setMaximumWidth(240)
        self.statusBar().addWidget(self.status_label, 1)
        self.statusBar().addPermanentWidget(self.progress_bar)

        # --- PLAYBACK ---
        self.playback = YearPlayback(self)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- SIGNAL CONNECTIONS ---
        self.playback.year_changed.connect(self.on_year_changed)
        self.playback.playing_changed.connect(self.on_playing_changed)
        self.visualizer.peak_selected.connect(self.on_peak_selected)
        self.visualizer.expedition_selected.connect(self.on_expedition_selected)
        self.tab_bar.currentChanged.connect(self.controls_stack.setCurrentIndex)
        self.filter_panel.criteria_changed.connect(self.on_criteria_changed)

        self.visualizer.start_render_loop()
        self.start_loading()

    def _create_actions(self) -> None:
        self.act_reload = QAction("Reload Data", self)
        self.act_reload.setEnabled(False)  # Enabled once a load has finished or failed
        self.act_reload.triggered.connect(self.start_loading)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        self.act_play = QAction("Play", self)
        self.act_play.setEnabled(False)  # Disabled until data exists
        self.act_play.triggered.connect(self.playback.toggle)

        self.act_clear_peak = QAction("Show All Peaks", self)
        self.act_clear_peak.setEnabled(False)
        self.act_clear_peak.triggered.connect(lambda: self.on_peak_filter_changed(None))

        self.act_clear_filters = QAction("Clear Filters", self)
        self.act_clear_filters.triggered.connect(self.filter_panel.clear)

        self.speed_group = QActionGroup(self)
        self.speed_actions: list[QAction] = []
        for speed in PLAYBACK_SPEEDS:
            action = QAction(f"{speed:g}x", self, checkable=True)
            action.setChecked(speed == self.playback.speed)
            action.triggered.connect(lambda checked=False, s=speed: self.playback.set_speed(s))
            self.speed_group.addAction(action)
            self.speed_actions.append(action)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        data_menu = menu_bar.addMenu("&Data")
        data_menu.addAction(self.act_reload)
        data_menu.addSeparator()
        data_menu.addAction(self.act_exit)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.act_play)
        speed_menu = view_menu.addMenu("Playback Speed")
        for action in self.speed_actions:
            speed_menu.addAction(action)
        view_menu.addSeparator()
        view_menu.addAction(self.act_clear_peak)
        view_menu.addAction(self.act_clear_filters)

    # --- LOADING ---

    def start_loading(self) -> None:
        if self.worker is not None and self.worker.isRunning():
            return

        self.act_reload.setEnabled(False)
        self.act_play.setEnabled(False)
        self.playback.stop()
        self.progress_bar.setValue(0)
        self.progress_bar.show()

        self.worker = DataLoadWorker(data_dir=self.data_dir)
        self.worker.progress_updated.connect(self.on_load_progress)
        self.worker.corpus_loaded.connect(self.on_corpus_loaded)
        self.worker.error_occurred.connect(self.on_load_error)
        self.worker.start()

    def on_load_progress(self, percentage: int, message: str) -> None:
        self.progress_bar.setValue(percentage)
        self.status_label.setText(message)

    def on_corpus_loaded(self, corpus: Corpus) -> None:
        self.atlas.reset()
        self.atlas.set_corpus(corpus)
        self.filter_panel.set_options(self.atlas.filter_options())
        self.atlas.set_criteria(self.filter_panel.current_criteria())
        self.act_clear_peak.setEnabled(self.atlas.criteria.peak_id is not None)
        self.visualizer.clear_markers()

        span = year_range(corpus)
        if span is not None:
            self.playback.current_year = None
            self.playback.set_range(*span)
            self.act_play.setEnabled(True)

        self.progress_bar.hide()
        self.act_reload.setEnabled(True)
        self.update_visualization()

    def on_load_error(self, message: str) -> None:
        self.progress_bar.hide()
        self.act_reload.setEnabled(True)
        self.status_label.setText(f"Error: {message}")

        reply = QMessageBox.critical(
            self,
            "Failed to load data",
            f"The expedition data could not be loaded:\n{message}",
            QMessageBox.Retry | QMessageBox.Close,
        )
        if reply == QMessageBox.Retry:
            self.start_loading()

    # --- STATE SLOTS ---

    def on_year_changed(self, year: int) -> None:
        self.atlas.set_year(year)
        self.update_visualization()

    def on_playing_changed(self, playing: bool) -> None:
        self.act_play.setText("Pause" if playing else "Play")

    def on_peak_filter_changed(self, peak_id: Optional[str]) -> None:
        self.atlas.select_peak(peak_id)
        self.filter_panel.set_peak(peak_id)
        self.act_clear_peak.setEnabled(peak_id is not None)
        self.update_visualization()

    def on_criteria_changed(self, criteria: FilterCriteria) -> None:
        self.atlas.set_criteria(criteria)
        self.act_clear_peak.setEnabled(criteria.peak_id is not None)
        self.update_visualization()

    def on_peak_selected(self, peak: PeakRecord) -> None:
        logger.info(f"Peak selected: {peak.name} ({peak.peak_id})")
        self.on_peak_filter_changed(peak.peak_id)
        self.statusBar().showMessage(
            f"{peak.name}: {peak.height_m} m, {peak_rank(peak)}, {peak.location or 'unknown location'}", 8000
        )

    def on_expedition_selected(self, expedition: ExpeditionRecord, peak: Optional[PeakRecord]) -> None:
        peak_name = peak.name if peak is not None else expedition.peak_id
        outcome = "success" if expedition.success else "no summit"
        self.statusBar().showMessage(
            f"{expedition.expedition_id} on {peak_name} ({expedition.year} {expedition.season.label}): "
            f"{outcome}, {expedition.total_members} members, {expedition.deaths} deaths",
            8000,
        )

    def update_visualization(self) -> None:
        self.visualizer.show_view(self.atlas.view)
        stats = self.atlas.statistics
        self.analytics_panel.refresh(self.atlas.view, stats)
        year = self.atlas.selected_year
        self.status_label.setText(
            f"{year if year else 'All years'}: {stats.total_expeditions} expeditions, "
            f"{stats.success_rate:.1f}% success, {stats.total_deaths} deaths"
        )
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - {year}" if year else VISIBLE_APP_NAME)

    def closeEvent(self, event: QCloseEvent, /) -> None:
        self.playback.stop()
        if self.worker is not None:
            self.worker.stop()
            self.worker.wait()
        self.visualizer.stop_render_loop()
        self.visualizer.close()
        event.accept()
