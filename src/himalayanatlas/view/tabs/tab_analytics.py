"""
Analytics Panel
===============
Read-only summary of the filtered view: headline rates, the seasonal split
and the busiest peaks and nations.
"""
from typing import Iterable, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QWidget, QVBoxLayout, QGroupBox, QLabel, QScrollArea

from himalayanatlas.model.filters import GroupStat, FilteredView, Statistics, nation_breakdown, peak_breakdown
from himalayanatlas.model.peak_identity import DEFAULT_RESOLVER, PeakIdentityResolver

TOP_PEAKS = 10
TOP_NATIONS = 8


def format_overview(stats: Statistics) -> str:
    return (
        f"<b>Expeditions:</b> {stats.total_expeditions} ({stats.successful_expeditions} successful)<br>"
        f"<b>Success Rate:</b> {stats.success_rate:.1f}%<br>"
        f"<b>Members:</b> {stats.total_members}<br>"
        f"<b>Deaths:</b> {stats.total_deaths} (mortality {stats.mortality_rate:.2f}%)<br>"
        f"<b>Oxygen Usage:</b> {stats.oxygen_usage_rate:.1f}%"
    )


def format_seasons(stats: Statistics) -> str:
    if not stats.seasonal_stats:
        return "No expeditions."
    return "<br>".join(
        f"<b>{s.label}:</b> {s.expeditions} expeditions, {s.success_rate:.1f}% success"
        for s in stats.seasonal_stats
    )


def format_group_stats(rows: Iterable[GroupStat]) -> str:
    lines = []
    for i, row in enumerate(rows, start=1):
        if row.expeditions == 0:
            continue
        height = f" ({row.height_m} m)" if row.height_m else ""
        lines.append(
            f"{i}. <b>{row.label}</b>{height}: {row.expeditions} expeditions, "
            f"{row.success_rate:.1f}% success, {row.deaths} deaths"
        )
    return "<br>".join(lines) if lines else "No expeditions."


class AnalyticsPanel(QWidget):
    def __init__(self, resolver: PeakIdentityResolver = DEFAULT_RESOLVER, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.resolver = resolver

        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        outer.addWidget(scroll)

        content = QWidget()
        layout = QVBoxLayout(content)
        scroll.setWidget(content)

        self.lbl_overview = self._section(layout, "Overview")
        self.lbl_seasons = self._section(layout, "Seasonal Breakdown")
        self.lbl_peaks = self._section(layout, "Most Popular Peaks")
        self.lbl_nations = self._section(layout, "Top Nations")
        layout.addStretch()

    @staticmethod
    def _section(layout: QVBoxLayout, title: str) -> QLabel:
        group = QGroupBox(title)
        group_layout = QVBoxLayout(group)
        label = QLabel("No data loaded.")
        label.setWordWrap(True)
        label.setTextFormat(Qt.RichText)
        group_layout.addWidget(label)
        layout.addWidget(group)
        return label

    def refresh(self, view: FilteredView, stats: Statistics) -> None:
        self.lbl_overview.setText(format_overview(stats))
        self.lbl_seasons.setText(format_seasons(stats))
        self.lbl_peaks.setText(format_group_stats(peak_breakdown(view, TOP_PEAKS, self.resolver)))
        self.lbl_nations.setText(format_group_stats(nation_breakdown(view, TOP_NATIONS)))
