from pathlib import Path
from typing import Optional
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QLabel,
    QPushButton, QProgressBar, QFileDialog, QMessageBox, QSizePolicy
)
from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QPixmap

from core.image_processor import ProcessedImageResult, format_bytes, save_result


class ResultViewer(QWidget):
    """Shows the converted image, size statistics and download controls."""

    resetRequested = Signal()
    saved = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.result: Optional[ProcessedImageResult] = None
        self.original_pixmap = QPixmap()
        self.processed_pixmap = QPixmap()
        self.showing_original = False
        self.start_directory = ""

        self.init_ui()

    def init_ui(self):
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(10)

        # Preview
        self.preview_label = QLabel()
        self.preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.preview_label.setMinimumSize(320, 240)
        # Ignored: the scaled pixmap must not grow the size hint
        self.preview_label.setSizePolicy(QSizePolicy.Policy.Ignored, QSizePolicy.Policy.Ignored)
        self.preview_label.setStyleSheet("background-color: #F0F0F0; border-radius: 8px;")
        layout.addWidget(self.preview_label, stretch=1)

        caption_layout = QHBoxLayout()
        self.caption_label = QLabel()
        self.caption_label.setStyleSheet("font-weight: bold;")
        caption_layout.addWidget(self.caption_label)
        caption_layout.addStretch()

        self.compare_btn = QPushButton("⇆ Hold to Compare")
        self.compare_btn.setToolTip("Press and hold to show the original image")
        self.compare_btn.pressed.connect(self.show_original)
        self.compare_btn.released.connect(self.show_processed)
        caption_layout.addWidget(self.compare_btn)
        layout.addLayout(caption_layout)

        # Statistics + actions
        bottom_layout = QHBoxLayout()

        stats_widget = QWidget()
        stats_layout = QGridLayout(stats_widget)
        stats_layout.setContentsMargins(0, 0, 0, 0)

        title = QLabel("<b>✅ Compression Successful</b>")
        stats_layout.addWidget(title, 0, 0, 1, 2)
        subtitle = QLabel("Color data removed & optimized")
        subtitle.setStyleSheet("color: #666;")
        stats_layout.addWidget(subtitle, 1, 0, 1, 2)

        stats_layout.addWidget(QLabel("Original Size:"), 2, 0)
        self.original_size_label = QLabel()
        self.original_size_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        stats_layout.addWidget(self.original_size_label, 2, 1)

        stats_layout.addWidget(QLabel("New Size:"), 3, 0)
        self.processed_size_label = QLabel()
        self.processed_size_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        self.processed_size_label.setStyleSheet("font-weight: bold; color: #16A34A;")
        stats_layout.addWidget(self.processed_size_label, 3, 1)

        self.size_bar = QProgressBar()
        self.size_bar.setRange(0, 100)
        self.size_bar.setTextVisible(False)
        self.size_bar.setMaximumHeight(8)
        stats_layout.addWidget(self.size_bar, 4, 0, 1, 2)

        self.reduction_label = QLabel()
        self.reduction_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        self.reduction_label.setStyleSheet("color: #16A34A; font-size: 11px;")
        stats_layout.addWidget(self.reduction_label, 5, 0, 1, 2)

        bottom_layout.addWidget(stats_widget, stretch=1)

        actions_layout = QVBoxLayout()
        actions_layout.addStretch()
        self.download_btn = QPushButton("⬇ Download Grayscale")
        self.download_btn.setMinimumHeight(40)
        self.download_btn.setStyleSheet("""
            QPushButton {
                background-color: #1F1F1F;
                color: #FFFFFF;
                font-weight: bold;
                border-radius: 8px;
            }
            QPushButton:hover {
                background-color: #333333;
            }
        """)
        self.download_btn.clicked.connect(self.download)
        actions_layout.addWidget(self.download_btn)

        self.reset_btn = QPushButton("Process Another Image")
        self.reset_btn.setFlat(True)
        self.reset_btn.clicked.connect(self.resetRequested)
        actions_layout.addWidget(self.reset_btn)
        actions_layout.addStretch()
        bottom_layout.addLayout(actions_layout, stretch=1)

        layout.addLayout(bottom_layout)

    def set_result(self, result: ProcessedImageResult):
        """Display a finished conversion."""
        self.result = result
        self.original_pixmap = QPixmap(str(result.original_path))
        self.processed_pixmap = QPixmap()
        self.processed_pixmap.loadFromData(result.processed_data)

        self.original_size_label.setText(format_bytes(result.original_size))
        self.processed_size_label.setText(format_bytes(result.processed_size))

        # Bar shows what is left of the original
        remaining = 100 - result.reduction_percentage
        self.size_bar.setValue(int(max(0, min(100, round(remaining)))))
        self.reduction_label.setText(f"{result.reduction_percentage:.1f}% Reduction")

        self.show_processed()

    def clear(self):
        self.result = None
        self.original_pixmap = QPixmap()
        self.processed_pixmap = QPixmap()
        self.preview_label.clear()

    @Slot()
    def show_original(self):
        self.showing_original = True
        self.caption_label.setText("Original (RGB)")
        self.update_preview()

    @Slot()
    def show_processed(self):
        self.showing_original = False
        self.caption_label.setText("Restored (Grayscale)")
        self.update_preview()

    def update_preview(self):
        """Scale the active pixmap into the preview area."""
        pixmap = self.original_pixmap if self.showing_original else self.processed_pixmap
        if pixmap.isNull():
            self.preview_label.clear()
            return
        self.preview_label.setPixmap(pixmap.scaled(
            self.preview_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation
        ))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.update_preview()

    @Slot()
    def download(self):
        """Ask where to save the converted image and write it."""
        if not self.result:
            return

        start = Path(self.start_directory) / self.result.download_name if self.start_directory \
            else Path(self.result.download_name)
        file_name, _ = QFileDialog.getSaveFileName(
            self,
            "Save Grayscale Image",
            str(start),
            "WebP Image (*.webp)"
        )
        if not file_name:
            return

        output_path = Path(file_name)
        if output_path.suffix.lower() != f".{self.result.format}":
            output_path = output_path.with_suffix(f".{self.result.format}")

        try:
            save_result(self.result, output_path)
        except OSError as e:
            QMessageBox.critical(self, "Save Error", f"Could not save image:\n\n{e}")
            return

        self.saved.emit(output_path)
