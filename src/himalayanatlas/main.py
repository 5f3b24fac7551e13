"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the Global Data Model (AtlasState).
2. Instantiates the Main Window (View), which starts the data load.
3. Passes the Model into the View so they can communicate.
"""
import logging
import sys
from typing import Optional, Union

from PySide6.QtWidgets import QApplication

from himalayanatlas.logging_config import setup_logging
from himalayanatlas.model.state import AtlasState
from himalayanatlas.view.main_window import MainWindow, VISIBLE_APP_NAME


def main(
    data_dir: Optional[str] = None,
    log_level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> None:
    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=log_level, log_file=log_file)

    # 2. Create the Qt Application
    app = QApplication(sys.argv)
    app.setApplicationName(VISIBLE_APP_NAME)

    # 3. Initialize the Data Model
    atlas = AtlasState()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(atlas, data_dir=data_dir)
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
