# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import io
import pathlib
import sys

import numpy as np
import pytest
from PIL import Image

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pad_analyzer.config import AnalyzerConfig  # noqa: E402

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
BRIGHT_RED = (220, 30, 30)
DARK_RED = (100, 10, 10)


@pytest.fixture
def canvas():
    """Factory for white RGB rasters with filled rectangles painted on."""
    def make(width=50, height=50, rects=(), background=WHITE):
        raster = np.empty((height, width, 3), dtype=np.uint8)
        raster[:, :] = background
        for x, y, w, h, color in rects:
            raster[y:y + h, x:x + w] = color
        return raster
    return make


@pytest.fixture
def png_bytes():
    def encode(raster):
        with io.BytesIO() as bio:
            Image.fromarray(raster).save(bio, format="PNG")
            return bio.getvalue()
    return encode


@pytest.fixture
def sharp_config():
    """Defaults without blurring, so synthetic shapes keep exact pixel counts."""
    return AnalyzerConfig(blur_radius=0)
