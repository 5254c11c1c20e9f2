import numpy as np
import pytest

from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.mask import DEFAULT_BLOOD_VALUE, average_blood_value, build_blood_mask, rgb_to_hsv


def pixel(rgb):
    return np.array([[rgb]], dtype=np.uint8)


@pytest.mark.parametrize("rgb, hue, sat, val", [
    ((255, 0, 0), 0.0, 1.0, 1.0),
    ((0, 255, 0), 1 / 3, 1.0, 1.0),
    ((0, 0, 255), 2 / 3, 1.0, 1.0),
    ((255, 255, 255), 0.0, 0.0, 1.0),
    ((0, 0, 0), 0.0, 0.0, 0.0),
    ((128, 64, 64), 0.0, 0.5, 128 / 255),
])
def test_rgb_to_hsv_known_colors(rgb, hue, sat, val):
    hsv = rgb_to_hsv(pixel(rgb))
    assert hsv.hue[0, 0] == pytest.approx(hue)
    assert hsv.saturation[0, 0] == pytest.approx(sat)
    assert hsv.value[0, 0] == pytest.approx(val)


def test_negative_hue_wraps_into_unit_range():
    hsv = rgb_to_hsv(pixel((255, 0, 60)))
    assert 0.9 < hsv.hue[0, 0] < 1.0
    assert hsv.hue[0, 0] * 360 == pytest.approx(360 - 60 / 255 * 60)


@pytest.mark.parametrize("rgb, expected", [
    ((220, 30, 30), True),      # fresh red blood
    ((255, 0, 60), True),       # red within 20 degrees below 360
    ((100, 10, 10), True),      # dark red
    ((0, 0, 0), True),          # black clot
    ((50, 50, 50), True),       # near-black grey
    ((30, 0, 0), False),        # too dark for red, too saturated for black
    ((255, 0, 128), False),     # magenta, outside hue band
    ((255, 200, 200), False),   # pale pink, not saturated enough
    ((128, 128, 128), False),   # mid grey
    ((0, 200, 0), False),
    ((255, 255, 255), False),
])
def test_blood_mask_predicate(rgb, expected):
    mask = build_blood_mask(rgb_to_hsv(pixel(rgb)), AnalyzerConfig())
    assert bool(mask[0, 0]) is expected


def test_hue_tolerance_is_configurable():
    orange = pixel((255, 100, 0))  # about 23.5 degrees
    assert not build_blood_mask(rgb_to_hsv(orange), AnalyzerConfig())[0, 0]
    assert build_blood_mask(rgb_to_hsv(orange), AnalyzerConfig(hue_tolerance=30))[0, 0]


def test_mask_has_raster_shape(canvas):
    raster = canvas(13, 7, rects=[(2, 2, 3, 3, (0, 0, 0))])
    mask = build_blood_mask(rgb_to_hsv(raster), AnalyzerConfig())
    assert mask.shape == (7, 13)
    assert mask.dtype == bool
    assert int(mask.sum()) == 9


def test_average_blood_value(canvas):
    raster = canvas(10, 10, rects=[(0, 0, 2, 2, (0, 0, 0)), (5, 5, 2, 2, (204, 0, 0))])
    hsv = rgb_to_hsv(raster)
    mask = build_blood_mask(hsv, AnalyzerConfig())
    assert average_blood_value(hsv, mask) == pytest.approx(0.4)


def test_average_blood_value_defaults_when_mask_empty(canvas):
    hsv = rgb_to_hsv(canvas(4, 4))
    mask = np.zeros((4, 4), dtype=bool)
    assert average_blood_value(hsv, mask) == DEFAULT_BLOOD_VALUE
