from typing import NamedTuple

import numpy as np

from pad_analyzer.config import AnalyzerConfig

# Mean brightness assumed when no pixel is masked.
DEFAULT_BLOOD_VALUE = 0.5


class HSVImage(NamedTuple):
    hue: np.ndarray         # [0, 1), fraction of a full turn
    saturation: np.ndarray  # [0, 1]
    value: np.ndarray       # [0, 1]


def rgb_to_hsv(raster: np.ndarray) -> HSVImage:
    """Vectorised max/min/chroma HSV conversion of an RGB ``uint8`` raster."""
    rgb = raster[..., :3].astype(np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    maxc = rgb.max(axis=-1)
    minc = rgb.min(axis=-1)
    delta = maxc - minc

    saturation = np.where(maxc > 0, delta / np.where(maxc > 0, maxc, 1.0), 0.0)

    d = np.where(delta > 0, delta, 1.0)
    hue = np.where(
        maxc == r,
        np.fmod((g - b) / d, 6.0),
        np.where(maxc == g, (b - r) / d + 2.0, (r - g) / d + 4.0),
    )
    hue = np.where(delta > 0, hue / 6.0, 0.0)
    hue = np.where(hue < 0, hue + 1.0, hue)
    hue = np.where(hue >= 1.0, hue - 1.0, hue)
    return HSVImage(hue, saturation, maxc)


def build_blood_mask(hsv: HSVImage, config: AnalyzerConfig) -> np.ndarray:
    """Boolean mask of blood-or-black pixels."""
    hue_deg = hsv.hue * 360.0
    red_hue = (hue_deg <= config.hue_tolerance) | (hue_deg >= 360.0 - config.hue_tolerance)
    red = red_hue & (hsv.saturation >= config.saturation_min) & (hsv.value >= config.value_min_for_blood)
    black = (hsv.value <= config.black_value_max) & (hsv.saturation <= config.black_saturation_max)
    return red | black


def average_blood_value(hsv: HSVImage, mask: np.ndarray) -> float:
    count = int(np.count_nonzero(mask))
    if count == 0:
        return DEFAULT_BLOOD_VALUE
    return float(hsv.value[mask].sum() / count)
