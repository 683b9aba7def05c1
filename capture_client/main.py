"""
NextCap Desktop Client

Unlock with a license key, share a screen, select a region and save it
as a PNG.
"""

import sys
import logging

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import Qt

from version import __version__
from .ui.main_window import MainWindow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the capture client."""
    # Keep mouse coordinates and widget sizes in the same units
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName("NextCap")
    app.setApplicationVersion(__version__)

    window = MainWindow()
    window.show()

    logger.info("Capture client started")

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
