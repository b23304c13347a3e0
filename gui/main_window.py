import logging
from pathlib import Path
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QStackedWidget,
    QMessageBox, QStatusBar, QProgressBar, QLabel, QFrame
)
from PySide6.QtCore import Qt, QThreadPool, Slot
from PySide6.QtGui import QAction

from gui.widgets.drop_zone import DropZone
from gui.widgets.result_viewer import ResultViewer
from core.image_processor import ProcessedImageResult
from core.settings_manager import SettingsManager
from core.workers import ConvertWorker

logger = logging.getLogger(__name__)

PROCESS_ERROR_MESSAGE = "Failed to process image"


class MainWindow(QMainWindow):
    """Main application window: upload, processing and result pages."""

    UPLOAD_PAGE = 0
    PROCESSING_PAGE = 1
    RESULT_PAGE = 2

    def __init__(self, settings: SettingsManager = None):
        super().__init__()
        self.settings = settings if settings is not None else SettingsManager()
        self.threadpool = QThreadPool()
        self._current_worker = None

        self.init_ui()
        self.restore_geometry()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle("MonoPixel")
        self.setMinimumSize(720, 600)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)
        main_layout.setContentsMargins(20, 20, 20, 20)
        main_layout.setSpacing(10)

        # Header
        title = QLabel("MonoPixel")
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        title.setStyleSheet("font-size: 32px; font-weight: 800;")
        main_layout.addWidget(title)

        tagline = QLabel(
            "Remove color information to compress images efficiently.\n"
            "See how much space you save by going grayscale."
        )
        tagline.setAlignment(Qt.AlignmentFlag.AlignCenter)
        tagline.setStyleSheet("color: #666;")
        main_layout.addWidget(tagline)

        self.pages = QStackedWidget()
        self.pages.addWidget(self.create_upload_page())
        self.pages.addWidget(self.create_processing_page())

        self.result_viewer = ResultViewer()
        self.result_viewer.resetRequested.connect(self.reset)
        self.result_viewer.saved.connect(self.on_saved)
        self.pages.addWidget(self.result_viewer)

        main_layout.addWidget(self.pages, stretch=1)

        # Create status bar
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Ready - Drop an image to begin")

        self.create_menus()

    def create_upload_page(self) -> QWidget:
        """Step cards and the drop zone."""
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setSpacing(20)

        steps_layout = QHBoxLayout()
        for icon, title, desc in (
            ("🗂", "Input RGB", "Upload full color image"),
            ("➜", "Process", "Remove hue/saturation"),
            ("⚡", "Output Mono", "Save optimized file"),
        ):
            card = QFrame()
            card.setFrameShape(QFrame.Shape.StyledPanel)
            card_layout = QVBoxLayout(card)
            for text, style in ((icon, "font-size: 20px;"),
                                (f"<b>{title}</b>", ""),
                                (desc, "color: #888; font-size: 11px;")):
                label = QLabel(text)
                label.setAlignment(Qt.AlignmentFlag.AlignCenter)
                label.setStyleSheet(style)
                card_layout.addWidget(label)
            steps_layout.addWidget(card)
        layout.addLayout(steps_layout)

        self.drop_zone = DropZone()
        self.drop_zone.start_directory = self.settings.get("last_directory")
        self.drop_zone.imageSelected.connect(self.start_processing)
        layout.addWidget(self.drop_zone, stretch=1)

        return page

    def create_processing_page(self) -> QWidget:
        """Busy indicator shown while a conversion runs."""
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        heading = QLabel("Processing...")
        heading.setAlignment(Qt.AlignmentFlag.AlignCenter)
        heading.setStyleSheet("font-size: 20px; font-weight: bold;")
        layout.addWidget(heading)

        subtitle = QLabel("Stripping color layers & compressing")
        subtitle.setAlignment(Qt.AlignmentFlag.AlignCenter)
        subtitle.setStyleSheet("color: #666;")
        layout.addWidget(subtitle)

        self.busy_bar = QProgressBar()
        self.busy_bar.setRange(0, 0)
        self.busy_bar.setFixedWidth(260)
        self.busy_bar.setTextVisible(False)
        layout.addWidget(self.busy_bar, alignment=Qt.AlignmentFlag.AlignCenter)

        return page

    def create_menus(self):
        """Create application menus."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        open_action = QAction("&Open Image...", self)
        open_action.setShortcut("Ctrl+O")
        open_action.triggered.connect(self.open_image)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut("Ctrl+Q")
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Settings menu
        settings_menu = menubar.addMenu("&Settings")

        reset_action = QAction("&Reset to Defaults", self)
        reset_action.triggered.connect(self.reset_settings)
        settings_menu.addAction(reset_action)

        # Help menu
        help_menu = menubar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.triggered.connect(self.show_about)
        help_menu.addAction(about_action)

    @Slot()
    def open_image(self):
        """Open the file picker from the menu."""
        if self.pages.currentIndex() == self.PROCESSING_PAGE:
            return
        self.reset()
        self.drop_zone.browse()

    @Slot(object)
    def start_processing(self, file_path: Path):
        """Hand the selected image to a background worker."""
        if self._current_worker is not None:
            return

        self.settings.set("last_directory", str(file_path.parent))
        self.drop_zone.start_directory = str(file_path.parent)
        self.result_viewer.start_directory = str(file_path.parent)

        worker = ConvertWorker(file_path, self.settings.get_all_convert_settings())
        self._current_worker = worker

        worker.signals.finished.connect(self.on_process_finished)
        worker.signals.error.connect(self.on_process_error)

        self.drop_zone.setEnabled(False)
        self.pages.setCurrentIndex(self.PROCESSING_PAGE)
        self.status_bar.showMessage(f"Processing {file_path.name}...")

        self.threadpool.start(worker)

    @Slot(object)
    def on_process_finished(self, result: ProcessedImageResult):
        self._current_worker = None
        self.drop_zone.setEnabled(True)

        self.result_viewer.set_result(result)
        self.pages.setCurrentIndex(self.RESULT_PAGE)
        self.status_bar.showMessage(
            f"{result.original_path.name}: {result.reduction_percentage:.1f}% reduction "
            f"at quality {result.quality:.1f}"
        )

    @Slot(str)
    def on_process_error(self, error_msg):
        self._current_worker = None
        self.drop_zone.setEnabled(True)
        self.pages.setCurrentIndex(self.UPLOAD_PAGE)
        self.status_bar.showMessage(PROCESS_ERROR_MESSAGE, 5000)

        logger.error("Conversion failed: %s", error_msg)
        QMessageBox.critical(self, "Processing Error", PROCESS_ERROR_MESSAGE)

    @Slot(object)
    def on_saved(self, output_path: Path):
        self.status_bar.showMessage(f"Saved to {output_path}", 5000)

    @Slot()
    def reset(self):
        """Return to the upload page."""
        self.result_viewer.clear()
        self.drop_zone.clear_error()
        self.pages.setCurrentIndex(self.UPLOAD_PAGE)
        self.status_bar.showMessage("Ready - Drop an image to begin")

    @Slot()
    def reset_settings(self):
        """Reset all settings to defaults."""
        reply = QMessageBox.question(
            self,
            "Reset Settings",
            "Are you sure you want to reset all settings to defaults?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )

        if reply == QMessageBox.StandardButton.Yes:
            self.settings.reset()
            self.drop_zone.start_directory = ""
            QMessageBox.information(
                self,
                "Settings Reset",
                "All settings have been reset to defaults."
            )

    @Slot()
    def show_about(self):
        """Show about dialog."""
        QMessageBox.about(
            self,
            "About MonoPixel",
            "<h2>MonoPixel v1.0.0</h2>"
            "<p>Convert images to grayscale and compress them as WebP.</p>"
            "<ul>"
            "<li>Luma-based grayscale conversion</li>"
            "<li>Automatic quality search to beat the original size</li>"
            "<li>Hold-to-compare preview</li>"
            "</ul>"
            "<p>Built with PySide6 and Python.</p>"
        )

    def restore_geometry(self):
        """Restore window geometry from settings."""
        geometry = self.settings.get("window_geometry")
        if geometry:
            self.restoreGeometry(geometry)

        state = self.settings.get("window_state")
        if state:
            self.restoreState(state)

    def closeEvent(self, event):
        """Wait for a running conversion, then save settings before closing."""
        if self._current_worker is not None:
            logger.info("Waiting for the running conversion to finish")
            self.threadpool.waitForDone()
            self._current_worker = None

        self.settings.set("window_geometry", self.saveGeometry())
        self.settings.set("window_state", self.saveState())
        event.accept()
