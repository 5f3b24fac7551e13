"""
Year Playback
Advances the active year on a timer until the last year with data.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

logger = logging.getLogger(__name__)

PLAYBACK_SPEEDS: tuple[float, ...] = (0.5, 1.0, 2.0, 4.0)
BASE_INTERVAL_MS: int = 1000


class YearPlayback(QObject):
    year_changed = Signal(int)
    playing_changed = Signal(bool)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.first_year: Optional[int] = None
        self.last_year: Optional[int] = None
        self.current_year: Optional[int] = None
        self.speed: float = 1.0

        self._timer = QTimer(self)
        self._timer.setInterval(self._interval_ms())
        self._timer.timeout.connect(self._advance)

    def _interval_ms(self) -> int:
        return int(BASE_INTERVAL_MS / self.speed)

    @property
    def is_playing(self) -> bool:
        return self._timer.isActive()

    def set_range(self, first_year: int, last_year: int) -> None:
        self.first_year, self.last_year = first_year, last_year
        if self.current_year is None:
            self.current_year = first_year

    def set_year(self, year: int) -> None:
        self.current_year = year

    def set_speed(self, speed: float) -> None:
        if speed not in PLAYBACK_SPEEDS:
            raise ValueError(f"Unsupported playback speed {speed}; expected one of {PLAYBACK_SPEEDS}.")
        self.speed = speed
        self._timer.setInterval(self._interval_ms())

    def play(self) -> None:
        if self.is_playing or self.current_year is None or self.last_year is None:
            return
        if self.current_year >= self.last_year:
            return
        self._timer.start()
        self.playing_changed.emit(True)

    def stop(self) -> None:
        """Stops playback. Idempotent; safe during teardown."""
        if not self._timer.isActive():
            return
        self._timer.stop()
        self.playing_changed.emit(False)

    def toggle(self) -> None:
        if self.is_playing:
            self.stop()
        else:
            self.play()

    def _advance(self) -> None:
        if self.current_year is None or self.last_year is None:
            self.stop()
            return
        next_year = self.current_year + 1
        if next_year > self.last_year:
            self.stop()
            return
        self.current_year = next_year
        self.year_changed.emit(next_year)
        if next_year >= self.last_year:
            self.stop()
