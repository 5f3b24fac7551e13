"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and data sources.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find the data directory when the app is frozen into an .exe.

Exports:
    DATA_PATH (str): Directory holding all input sources.
    CONSOLIDATED_SOURCES, RAW_SOURCES: Ordered source name -> file name.
"""
import os
import sys
from pathlib import Path


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # config.py is in src/himalayanatlas/
    project_root: Path = Path(__file__).parent.parent.parent
    return os.path.join(str(project_root), relative_path)


DATA_PATH: str = os.environ.get("HIMALAYANATLAS_DATA") or get_resource_path("data")

# Pre-processed sources, tried first. All four must load.
CONSOLIDATED_SOURCES: dict[str, str] = {
    "expeditions": "expeditions_processed.json",
    "peaks": "peaks_processed.json",
    "summary": "summary_stats.json",
    "members": "members_processed.json",
}

# Raw tabular sources, loaded sequentially when the consolidated set fails.
RAW_SOURCES: dict[str, str] = {
    "expeditions": "exped.csv",
    "members": "members.csv",
    "peaks": "peaks.csv",
    "references": "refer.csv",
    "coordinates": "peak_coordinates.csv",
}

HEIGHTMAP_FILE: str = "heightmap.png"
TERRAIN_INFO_FILE: str = "terrain_info.json"
