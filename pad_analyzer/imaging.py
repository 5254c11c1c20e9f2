import io
import logging
from pathlib import Path

import numpy as np
import requests
from PIL import Image, UnidentifiedImageError

from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.errors import ImageDecodeError, UnsupportedSourceError
from pad_analyzer.utils import decode_data_url, round_half_up

logger = logging.getLogger(__name__)


def load_image(source, timeout: float = 10.0) -> np.ndarray:
    """Decode ``source`` into an RGB raster.

    Raises ``ImageDecodeError`` for unreadable data and
    ``UnsupportedSourceError`` for source kinds this loader does not know.
    """
    if isinstance(source, np.ndarray):
        return _array_to_raster(source)
    if isinstance(source, Image.Image):
        return _pil_to_raster(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return _decode_bytes(bytes(source))
    if isinstance(source, Path):
        return _decode_bytes(_read_path(source))
    if isinstance(source, str):
        if source.startswith("data:"):
            return _decode_bytes(decode_data_url(source))
        if source.lower().startswith(("http://", "https://")):
            return _decode_bytes(_fetch_url(source, timeout))
        return _decode_bytes(_read_path(Path(source)))
    if hasattr(source, "read"):
        data = source.read()
        if not isinstance(data, (bytes, bytearray)):
            raise UnsupportedSourceError("File-like image sources must be opened in binary mode")
        return _decode_bytes(bytes(data))
    raise UnsupportedSourceError(f"Unsupported image source type: {type(source).__name__}")


def preprocess(raster: np.ndarray, config: AnalyzerConfig) -> np.ndarray:
    """Downscale so the longest side fits ``max_dimension``, then box-blur."""
    h, w = raster.shape[:2]
    scale = min(1.0, config.max_dimension / max(w, h))
    if scale >= 1.0 and config.blur_radius == 0:
        return raster
    if scale < 1.0:
        new_w = max(1, int(round_half_up(w * scale)))
        new_h = max(1, int(round_half_up(h * scale)))
        resized = Image.fromarray(raster).resize((new_w, new_h), Image.Resampling.BILINEAR)
        raster = np.array(resized, dtype=np.uint8)
        logger.debug("Resized %dx%d -> %dx%d", w, h, new_w, new_h)
    if config.blur_radius > 0:
        raster = box_blur(raster, config.blur_radius)
    return _freeze(raster)


def box_blur(raster: np.ndarray, radius: int) -> np.ndarray:
    """Mean of the (2r+1)^2 neighbourhood per channel; out-of-range samples clamp to the edge."""
    if radius <= 0:
        return raster
    h, w = raster.shape[:2]
    size = 2 * radius + 1
    kernel = size * size
    padded = np.pad(raster.astype(np.int64), ((radius, radius), (radius, radius), (0, 0)), mode="edge")
    total = np.zeros(raster.shape, dtype=np.int64)
    for dy in range(size):
        for dx in range(size):
            total += padded[dy:dy + h, dx:dx + w]
    # integer round-half-up of total / kernel
    return ((2 * total + kernel) // (2 * kernel)).astype(np.uint8)


def _decode_bytes(data: bytes) -> np.ndarray:
    if not data:
        raise ImageDecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return _pil_to_raster(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e


def _read_path(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Could not read image file {path}: {e}") from e


def _fetch_url(url: str, timeout: float) -> bytes:
    logger.info("Fetching image from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ImageDecodeError(f"Could not fetch image from {url}: {e}") from e
    return response.content


def _pil_to_raster(img: Image.Image) -> np.ndarray:
    raster = np.array(img.convert("RGB"), dtype=np.uint8)
    if raster.size == 0:
        raise ImageDecodeError("Image has no pixels")
    return _freeze(raster)


def _array_to_raster(array: np.ndarray) -> np.ndarray:
    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise ImageDecodeError(f"Expected an (H, W, 3) or (H, W, 4) array, got shape {array.shape}")
    if array.shape[0] == 0 or array.shape[1] == 0:
        raise ImageDecodeError("Image has no pixels")
    if not np.issubdtype(array.dtype, np.number):
        raise ImageDecodeError(f"Unsupported array dtype: {array.dtype}")
    rgb = np.clip(array[:, :, :3], 0, 255).astype(np.uint8)
    return _freeze(rgb)


def _freeze(raster: np.ndarray) -> np.ndarray:
    raster = np.ascontiguousarray(raster)
    raster.setflags(write=False)
    return raster
