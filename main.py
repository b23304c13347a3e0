#!/usr/bin/env python3
"""
MonoPixel - Grayscale Image Compressor
Strips color from an image and re-encodes it as a smaller WebP file.
"""
import logging
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import Qt, QStandardPaths
from PySide6.QtGui import QIcon

from core.log_setup import setup_logging
from gui.main_window import MainWindow

# Application metadata
APP_NAME = "MonoPixel"
APP_VERSION = "1.0.0"
ORG_NAME = "MonoPixel"
ORG_DOMAIN = "monopixel.local"


def main():
    # Enable High DPI scaling (Qt 6)
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    # Create application
    app = QApplication(sys.argv)

    # Set application metadata for QSettings
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(ORG_NAME)
    app.setOrganizationDomain(ORG_DOMAIN)
    app.setStyle("Fusion")

    data_dir = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppDataLocation)
    logger = setup_logging(
        level=logging.DEBUG if "--debug" in sys.argv else logging.INFO,
        log_dir=Path(data_dir) / "logs" if data_dir else None,
    )
    logger.info("%s %s starting", APP_NAME, APP_VERSION)

    # Set application icon if exists
    icon_path = Path(__file__).parent / "assets" / "icon.png"
    if icon_path.exists():
        app.setWindowIcon(QIcon(str(icon_path)))

    # Create and show main window
    window = MainWindow()
    window.show()

    # Run application
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
