"""
Filters Control Panel
"""
from typing import Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QFormLayout, QGroupBox, QComboBox, QCheckBox, QSpinBox, QHBoxLayout, QPushButton
)

from himalayanatlas.model.filters import FilterCriteria, FilterOptions
from himalayanatlas.model.records import Season

MAX_HEIGHT_M = 9000
MAX_TEAM_SIZE = 1000


def range_or_none(low: int, high: int, ceiling: int) -> Optional[tuple[int, int]]:
    """Spin box pair -> inclusive range. 0 on both ends means unbounded; 0 as the upper end means the ceiling."""
    if low <= 0 and high <= 0:
        return None
    if high <= 0:
        high = ceiling
    return (min(low, high), max(low, high))


class FilterControlPanel(QWidget):
    # Signal: the complete new FilterCriteria
    criteria_changed = Signal(object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QVBoxLayout(self)

        # 1. Selection
        select_group = QGroupBox("Filters")
        form = QFormLayout(select_group)

        self.peak_combo = QComboBox()
        self.peak_combo.addItem("All peaks", None)
        form.addRow("Peak:", self.peak_combo)

        self.season_combo = QComboBox()
        self.season_combo.addItem("All seasons", None)
        form.addRow("Season:", self.season_combo)

        self.nation_combo = QComboBox()
        self.nation_combo.addItem("All nations", None)
        form.addRow("Nation:", self.nation_combo)

        self.success_check = QCheckBox("Successful expeditions only")
        form.addRow(self.success_check)

        layout.addWidget(select_group)

        # 2. Ranges
        range_group = QGroupBox("Ranges")
        range_form = QFormLayout(range_group)

        self.height_min_spin, self.height_max_spin = self._range_row(range_form, "Peak height [m]:", MAX_HEIGHT_M, 100)
        self.team_min_spin, self.team_max_spin = self._range_row(range_form, "Team size:", MAX_TEAM_SIZE, 1)

        layout.addWidget(range_group)

        btn_clear = QPushButton("Clear Filters")
        btn_clear.clicked.connect(self.clear)
        layout.addWidget(btn_clear)

        layout.addStretch()

        # --- SIGNAL CONNECTIONS ---
        for combo in (self.peak_combo, self.season_combo, self.nation_combo):
            combo.currentIndexChanged.connect(self._emit_criteria)
        self.success_check.toggled.connect(self._emit_criteria)
        for spin in (self.height_min_spin, self.height_max_spin, self.team_min_spin, self.team_max_spin):
            spin.valueChanged.connect(self._emit_criteria)

    def _range_row(self, form: QFormLayout, label: str, ceiling: int, step: int) -> tuple[QSpinBox, QSpinBox]:
        row = QHBoxLayout()
        spins = []
        for _ in range(2):
            spin = QSpinBox()
            spin.setRange(0, ceiling)
            spin.setSingleStep(step)
            spin.setSpecialValueText("Any")
            row.addWidget(spin)
            spins.append(spin)
        form.addRow(label, row)
        return spins[0], spins[1]

    def set_options(self, options: FilterOptions) -> None:
        """Reloads the choices and restores the previous selections where they still exist."""
        self._set_signals_blocked(True)

        self._fill_combo(self.peak_combo, "All peaks", [(f"{p.name} ({p.height_m} m)", p.peak_id) for p in options.peaks])
        self._fill_combo(self.season_combo, "All seasons", [(s.label, s) for s in options.seasons])
        self._fill_combo(self.nation_combo, "All nations", [(n, n) for n in options.nations])

        self._set_signals_blocked(False)

    @staticmethod
    def _fill_combo(combo: QComboBox, any_label: str, items: list[tuple[str, object]]) -> None:
        current = combo.currentData()
        combo.clear()
        combo.addItem(any_label, None)
        for text, data in items:
            combo.addItem(text, data)
        index = combo.findData(current) if current is not None else 0
        combo.setCurrentIndex(max(index, 0))

    def set_peak(self, peak_id: Optional[str]) -> None:
        """Mirrors a peak chosen elsewhere (3D picking) without re-emitting."""
        self.peak_combo.blockSignals(True)
        index = self.peak_combo.findData(peak_id) if peak_id is not None else 0
        self.peak_combo.setCurrentIndex(max(index, 0))
        self.peak_combo.blockSignals(False)

    def current_criteria(self) -> FilterCriteria:
        season = self.season_combo.currentData()
        return FilterCriteria(
            peak_id=self.peak_combo.currentData(),
            season=Season(season) if season is not None else None,
            nation=self.nation_combo.currentData(),
            success_only=self.success_check.isChecked(),
            height_range=range_or_none(self.height_min_spin.value(), self.height_max_spin.value(), MAX_HEIGHT_M),
            team_size_range=range_or_none(self.team_min_spin.value(), self.team_max_spin.value(), MAX_TEAM_SIZE),
        )

    def clear(self) -> None:
        self._set_signals_blocked(True)
        for combo in (self.peak_combo, self.season_combo, self.nation_combo):
            combo.setCurrentIndex(0)
        self.success_check.setChecked(False)
        for spin in (self.height_min_spin, self.height_max_spin, self.team_min_spin, self.team_max_spin):
            spin.setValue(0)
        self._set_signals_blocked(False)
        self._emit_criteria()

    def _set_signals_blocked(self, blocked: bool) -> None:
        for widget in (
            self.peak_combo, self.season_combo, self.nation_combo, self.success_check,
            self.height_min_spin, self.height_max_spin, self.team_min_spin, self.team_max_spin,
        ):
            widget.blockSignals(blocked)

    def _emit_criteria(self, *_args) -> None:
        self.criteria_changed.emit(self.current_criteria())
