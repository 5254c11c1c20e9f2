import pytest
from pydantic import ValidationError

from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.errors import InvalidConfigurationError


def test_defaults():
    config = AnalyzerConfig()
    assert config.max_dimension == 800
    assert config.blur_radius == 1
    assert config.hue_tolerance == 20
    assert config.value_max_for_clot == 0.25
    assert config.min_clot_pixels == 40
    assert config.max_clot_pixels == 1000
    assert config.pad_dry_weight_grams == 5
    assert config.scale_px_per_cm is None


def test_config_is_frozen():
    config = AnalyzerConfig()
    with pytest.raises(ValidationError):
        config.blur_radius = 3


@pytest.mark.parametrize("values", [
    {"max_dimension": 0},
    {"saturation_min": 1.5},
    {"scale_px_per_cm": 0},
    {"min_clot_pixels": 500, "max_clot_pixels": 100},
    {"flow_heavy_ml": 300},
    {"value_max_for_clot": 0.6},
])
def test_invalid_values_rejected(values):
    with pytest.raises(InvalidConfigurationError):
        AnalyzerConfig.create(**values)


def test_merged_accepts_camel_and_snake_case():
    config = AnalyzerConfig().merged({"blurRadius": 0, "pad_dry_weight_grams": 7})
    assert config.blur_radius == 0
    assert config.pad_dry_weight_grams == 7


def test_merged_without_options_is_identity():
    config = AnalyzerConfig()
    assert config.merged(None) is config
    assert config.merged({}) is config


def test_with_calibration():
    config = AnalyzerConfig().with_calibration(pad_width_cm=7.5, image_pad_width_px=300)
    assert config.scale_px_per_cm == 40.0


@pytest.mark.parametrize("cm, px", [(0, 100), (10, 0), (-1, 100), (None, 100), (10, None), ("x", 10),
                                    (float("inf"), 10)])
def test_bad_calibration_rejected(cm, px):
    with pytest.raises(InvalidConfigurationError):
        AnalyzerConfig().with_calibration(cm, px)


def test_from_env():
    environ = {
        "PAD_ANALYZER_MAX_DIMENSION": "1024",
        "PAD_ANALYZER_SCALE_PX_PER_CM": "12.5",
        "PAD_ANALYZER_BLUR_RADIUS": "",
        "UNRELATED": "1",
    }
    config = AnalyzerConfig.from_env(environ=environ)
    assert config.max_dimension == 1024
    assert config.scale_px_per_cm == 12.5
    assert config.blur_radius == 1


def test_from_env_rejects_garbage():
    with pytest.raises(InvalidConfigurationError):
        AnalyzerConfig.from_env(environ={"PAD_ANALYZER_MAX_DIMENSION": "huge"})


@pytest.mark.parametrize("cm, px", [(1e-300, 1e300), (1e-320, 1e10)])
def test_calibration_overflowing_scale_rejected(cm, px):
    # both sides are positive and finite but their ratio is not
    with pytest.raises(InvalidConfigurationError):
        AnalyzerConfig().with_calibration(cm, px)
