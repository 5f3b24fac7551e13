"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling long-running tasks.

Why is this file needed?
------------------------
1. Responsiveness: Parsing the raw CSV sources takes seconds. Running it on
   the main thread would freeze the render loop.
2. Signals: Progress, the finished corpus and load errors reach the GUI via
   Qt Signals. The corpus is only installed into the state and the scene on
   the main thread.

Classes:
    DataLoadWorker: Runs DataLoader.load().
"""
import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import QThread, Signal

from himalayanatlas.model.io import DataLoader, DataLoadError, LoadCancelled

logger = logging.getLogger(__name__)


class DataLoadWorker(QThread):
    progress_updated = Signal(int, str)  # e.g. (40, "Loaded members.")
    corpus_loaded = Signal(object)
    error_occurred = Signal(str)

    def __init__(self, data_dir: Optional[str] = None, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.loader = DataLoader(data_dir=data_dir, rng=rng)

    def run(self):
        try:
            logger.info("Starting data load in background thread...")

            def progress_callback(percentage: float, message: str) -> None:
                if not self.loader.cancelled:
                    self.progress_updated.emit(int(round(percentage)), message)

            corpus = self.loader.load(progress=progress_callback)
            if not self.loader.cancelled:
                self.corpus_loaded.emit(corpus)

        except LoadCancelled:
            logger.info("Data load worker stopped before completion.")
        except DataLoadError as e:
            logger.error(f"Error in DataLoadWorker: {e}")
            self.error_occurred.emit(str(e))
        except Exception as e:
            logger.error(f"Unexpected error in DataLoadWorker: {e}")
            self.error_occurred.emit(str(e))

    def stop(self) -> None:
        """Cancels the load; safe to call repeatedly."""
        self.loader.cancel()
