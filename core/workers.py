import logging
import traceback
from pathlib import Path
from PySide6.QtCore import QObject, QRunnable, Signal, Slot

from core.image_processor import process_image, ImageProcessingError

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for worker threads."""
    finished = Signal(object)
    error = Signal(str)
    progress = Signal(object)


class ConvertWorker(QRunnable):
    """Worker for converting a single image in a background thread."""

    def __init__(self, file_path: Path, settings: dict):
        super().__init__()
        self.file_path = file_path
        self.settings = settings
        self.signals = WorkerSignals()

    @Slot()
    def run(self):
        """Execute the conversion."""
        try:
            self.signals.progress.emit(self.file_path.name)
            result = process_image(self.file_path, self.settings)
        except ImageProcessingError as e:
            logger.error("Error processing %s: %s", self.file_path.name, e)
            self.signals.error.emit(str(e))
        except Exception as e:
            logger.exception("Unexpected error processing %s", self.file_path.name)
            self.signals.error.emit(f"{str(e)}\n\n{traceback.format_exc()}")
        else:
            self.signals.finished.emit(result)
