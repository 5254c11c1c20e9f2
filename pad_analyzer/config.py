import math
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from pad_analyzer.errors import InvalidConfigurationError

ENV_PREFIX = "PAD_ANALYZER_"


class AnalyzerConfig(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # --- Preprocessing ---
    max_dimension: int = Field(800, gt=0)
    blur_radius: int = Field(1, ge=0)

    # --- Blood mask ---
    # Degrees either side of 0/360 that still count as red.
    hue_tolerance: float = Field(20.0, ge=0, le=180)
    saturation_min: float = Field(0.25, ge=0, le=1)
    value_min_for_blood: float = Field(0.15, ge=0, le=1)
    # Near-black clot material falls outside the red hue band.
    black_value_max: float = Field(0.25, ge=0, le=1)
    black_saturation_max: float = Field(0.30, ge=0, le=1)

    # --- Region classification ---
    min_clot_pixels: int = Field(40, ge=1)
    max_clot_pixels: int = Field(1000, ge=1)
    value_max_for_clot: float = Field(0.25, ge=0, le=1)
    clot_saturation_max: float = Field(0.30, ge=0, le=1)
    value_max_for_dark_region: float = Field(0.55, ge=0, le=1)
    dark_region_saturation_min: float = Field(0.30, ge=0, le=1)
    dark_region_min_darkening: float = Field(0.06, ge=0, le=1)
    max_regions_per_kind: int = Field(3, ge=0)
    scale_px_per_cm: Optional[float] = Field(None, gt=0)

    # --- Coverage & flow ---
    background_channel_min: int = Field(230, ge=0, le=255)
    blood_detected_coverage: float = Field(0.02, ge=0, le=1)
    pad_dry_weight_grams: float = Field(5.0, ge=0)
    flow_moderate_ml: float = Field(5.0, ge=0)
    flow_heavy_ml: float = Field(15.0, ge=0)
    flow_critical_ml: float = Field(250.0, ge=0)

    # --- Risk ---
    risk_high_ml: float = Field(250.0, ge=0)
    risk_low_max_ml: float = Field(200.0, ge=0)
    large_clot_cm2: float = Field(1.5, ge=0)

    # --- Loader ---
    fetch_timeout_seconds: float = Field(10.0, gt=0)

    @model_validator(mode="after")
    def check_ordering(self):
        if self.min_clot_pixels > self.max_clot_pixels:
            raise ValueError("min_clot_pixels must not exceed max_clot_pixels")
        if not self.flow_moderate_ml <= self.flow_heavy_ml <= self.flow_critical_ml:
            raise ValueError("flow thresholds must be ascending")
        if self.value_max_for_clot > self.value_max_for_dark_region:
            raise ValueError("value_max_for_clot must not exceed value_max_for_dark_region")
        return self

    @classmethod
    def create(cls, **values: Any) -> "AnalyzerConfig":
        """Build a config, reporting bad values as ``InvalidConfigurationError``."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidConfigurationError(_describe(e)) from e

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX,
                 environ: Optional[Mapping[str, str]] = None) -> "AnalyzerConfig":
        """Read overrides such as ``PAD_ANALYZER_MAX_DIMENSION=1024``."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(prefix + name.upper())
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()
        return cls.create(**values)

    def merged(self, options: Optional[Mapping[str, Any]] = None) -> "AnalyzerConfig":
        """Return a copy with ``options`` applied; keys may be snake_case or camelCase."""
        if not options:
            return self
        names = _field_names()
        data = self.model_dump()
        for key, value in options.items():
            if key not in names:
                raise InvalidConfigurationError(f"Unknown analyzer option: {key!r}")
            data[names[key]] = value
        return type(self).create(**data)

    def with_calibration(self, pad_width_cm: Optional[float],
                         image_pad_width_px: Optional[float]) -> "AnalyzerConfig":
        """Return a copy whose pixel scale maps ``image_pad_width_px`` to ``pad_width_cm``.

        ``image_pad_width_px`` is measured in the image as supplied, before any
        downscaling.
        """
        cm = _positive(pad_width_cm, "pad_width_cm")
        px = _positive(image_pad_width_px, "image_pad_width_px")
        scale = px / cm
        if not math.isfinite(scale) or scale <= 0:
            raise InvalidConfigurationError(
                f"Calibration {image_pad_width_px!r} px / {pad_width_cm!r} cm gives an unusable scale")
        return self.model_copy(update={"scale_px_per_cm": scale})


def _field_names() -> Dict[str, str]:
    names = {}
    for name in AnalyzerConfig.model_fields:
        names[name] = name
        names[to_camel(name)] = name
    return names


def _positive(value: Any, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"{label} must be a number, got {value!r}") from None
    if not math.isfinite(number) or number <= 0:
        raise InvalidConfigurationError(f"{label} must be a positive number, got {value!r}")
    return number


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        where = ".".join(str(p) for p in item.get("loc", ())) or "config"
        parts.append(f"{where}: {item.get('msg')}")
    return "; ".join(parts)
