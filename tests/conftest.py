"""Shared fixtures: headless Qt, throwaway settings and generated images."""
import os
from pathlib import Path

# Must be set before the first Qt import
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PIL import Image
from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from core.settings_manager import SettingsManager


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication for the whole test session."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings(tmp_path: Path) -> SettingsManager:
    """SettingsManager backed by an INI file in the test's temp dir."""
    store = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    return SettingsManager(store)


@pytest.fixture
def noisy_png(tmp_path: Path) -> Path:
    """A colorful noise PNG; lossless RGB noise is much larger than lossy gray WebP."""
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(128, 128, 3), dtype=np.uint8)
    path = tmp_path / "noise.png"
    Image.fromarray(pixels, "RGB").save(path)
    return path


@pytest.fixture
def text_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text("definitely not an image")
    return path
