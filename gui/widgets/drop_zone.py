from pathlib import Path
from typing import Optional
from PySide6.QtWidgets import (
    QFrame, QVBoxLayout, QLabel, QPushButton, QFileDialog
)
from PySide6.QtCore import Qt, Signal, Slot

from core.image_processor import validate_image_file, InvalidImageError


class DropZone(QFrame):
    """Drag & drop area that also opens a file picker when clicked."""

    imageSelected = Signal(object)

    FILE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp *.tif *.tiff);;All Files (*)"

    IDLE_STYLE = """
        QFrame#dropZone {
            border: 2px dashed #AAAAAA;
            border-radius: 16px;
            background-color: #FFFFFF;
        }
    """
    DRAG_STYLE = """
        QFrame#dropZone {
            border: 2px dashed #3B82F6;
            border-radius: 16px;
            background-color: #EFF6FF;
        }
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("dropZone")
        self.setAcceptDrops(True)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setMinimumHeight(220)
        self.start_directory = ""
        self.error: Optional[str] = None
        self.is_dragging = False

        self.init_ui()
        self.update_view()

    def init_ui(self):
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(40, 40, 40, 40)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.icon_label = QLabel()
        self.icon_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.icon_label.setStyleSheet("font-size: 32px;")
        layout.addWidget(self.icon_label)

        self.title_label = QLabel()
        self.title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.title_label.setStyleSheet("font-size: 18px; font-weight: bold;")
        layout.addWidget(self.title_label)

        self.message_label = QLabel()
        self.message_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.message_label.setWordWrap(True)
        layout.addWidget(self.message_label)

        self.try_again_btn = QPushButton("Try Again")
        self.try_again_btn.setFlat(True)
        self.try_again_btn.setStyleSheet("color: #DC2626; font-size: 11px;")
        self.try_again_btn.clicked.connect(self.clear_error)
        layout.addWidget(self.try_again_btn, alignment=Qt.AlignmentFlag.AlignCenter)

    def update_view(self):
        """Refresh labels and styling for the current state."""
        self.setStyleSheet(self.DRAG_STYLE if self.is_dragging else self.IDLE_STYLE)

        if self.error:
            self.icon_label.setText("⚠️")
            self.title_label.setText("Invalid File")
            self.message_label.setText(self.error)
            self.message_label.setStyleSheet("color: #DC2626;")
        else:
            self.icon_label.setText("⬆️")
            self.title_label.setText("Drag & Drop")
            self.message_label.setText("or Click to Upload Image (RGB)")
            self.message_label.setStyleSheet("color: #666;")

        self.try_again_btn.setVisible(bool(self.error))

    @Slot()
    def clear_error(self):
        self.error = None
        self.update_view()

    def validate_and_select(self, file_path: Path) -> bool:
        """Emit imageSelected for valid images, otherwise show the error inline."""
        self.error = None
        try:
            validate_image_file(file_path)
        except InvalidImageError as e:
            self.error = str(e)
            self.update_view()
            return False

        self.update_view()
        self.imageSelected.emit(file_path)
        return True

    @Slot()
    def browse(self):
        """Open a file picker."""
        file_name, _ = QFileDialog.getOpenFileName(
            self,
            "Select Image",
            self.start_directory,
            self.FILE_FILTER
        )
        if file_name:
            self.validate_and_select(Path(file_name))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.isEnabled():
            self.browse()
        super().mouseReleaseEvent(event)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
            self.is_dragging = True
            self.update_view()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dragLeaveEvent(self, event):
        self.is_dragging = False
        self.update_view()

    def dropEvent(self, event):
        self.is_dragging = False
        urls = event.mimeData().urls()
        local_files = [url.toLocalFile() for url in urls if url.isLocalFile()]

        if local_files:
            event.acceptProposedAction()
            # Only the first file is used
            self.validate_and_select(Path(local_files[0]))
        else:
            self.update_view()
