import logging
import math
from datetime import datetime, timezone
from typing import Any, Mapping, NamedTuple, Optional, Tuple

import numpy as np

from pad_analyzer.classifier import classify_components
from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.errors import InvalidConfigurationError
from pad_analyzer.flow import estimate_coverage, estimate_flow
from pad_analyzer.imaging import load_image, preprocess
from pad_analyzer.mask import average_blood_value, build_blood_mask, rgb_to_hsv
from pad_analyzer.regions import extract_components
from pad_analyzer.report import build_report
from pad_analyzer.schemas import AnalysisReport
from pad_analyzer.utils import draw_boxes_on_image

logger = logging.getLogger(__name__)


class _Run(NamedTuple):
    report: AnalysisReport
    raster: np.ndarray  # preprocessed raster the report's coordinates refer to


def calibrate(pad_width_cm: float, image_pad_width_px: float,
              config: Optional[AnalyzerConfig] = None) -> AnalyzerConfig:
    """Return ``config`` (or the defaults) with a pixel-per-cm scale set.

    ``image_pad_width_px`` is the pad width in the image as uploaded; the scale
    is carried over to the downscaled raster when areas are converted to cm2.
    """
    config = config or AnalyzerConfig()
    calibrated = config.with_calibration(pad_width_cm, image_pad_width_px)
    logger.info("Calibrated scale: %.3f px/cm", calibrated.scale_px_per_cm)
    return calibrated


def analyze(image: Any, weight_g: float = 0.0, config: Optional[AnalyzerConfig] = None,
            options: Optional[Mapping[str, Any]] = None, now: Optional[datetime] = None) -> AnalysisReport:
    """Decode ``image`` and produce an ``AnalysisReport``.

    ``options`` overrides individual config fields for this call only.
    ``now`` fixes the report timestamp (defaults to the current UTC time).
    """
    return _run(image, weight_g, config, options, now).report


def analyze_raster(raster: np.ndarray, weight_g: float = 0.0, config: Optional[AnalyzerConfig] = None,
                   now: Optional[datetime] = None) -> AnalysisReport:
    """Same as ``analyze`` for an already decoded ``(H, W, 3)`` RGB array."""
    return _run(raster, weight_g, config, None, now).report


def analyze_annotated(image: Any, weight_g: float = 0.0, config: Optional[AnalyzerConfig] = None,
                      options: Optional[Mapping[str, Any]] = None,
                      now: Optional[datetime] = None) -> Tuple[AnalysisReport, bytes]:
    """Analyze and also render the retained regions onto the preprocessed image (PNG bytes)."""
    run = _run(image, weight_g, config, options, now)
    return run.report, draw_boxes_on_image(run.raster, overlay_regions(run.report))


def overlay_regions(report: AnalysisReport):
    regions = []
    for label, items in (("Clot", report.findings.clots), ("Dark region", report.findings.dark_regions)):
        for item in items:
            box = item.bbox
            regions.append({
                "label": label,
                "bbox": [box.min_x, box.min_y, box.max_x, box.max_y],
                "score": item.confidence / 100.0,
            })
    return regions


def _run(image, weight_g, config, options, now) -> _Run:
    config = (config or AnalyzerConfig()).merged(options)
    weight = _check_weight(weight_g)

    raster = load_image(image, timeout=config.fetch_timeout_seconds)
    source_h, source_w = raster.shape[:2]
    logger.info("Analyzing %dx%d pad image (weight %.1f g)", source_w, source_h, weight)
    raster = preprocess(raster, config)
    scale = working_scale(config.scale_px_per_cm, (source_h, source_w), raster.shape[:2])

    hsv = rgb_to_hsv(raster)
    mask = build_blood_mask(hsv, config)
    components = extract_components(mask, hsv.value, hsv.saturation)
    avg_value = average_blood_value(hsv, mask)
    clots, dark_regions = classify_components(components, avg_value, config, scale)

    coverage = estimate_coverage(raster, mask, config)
    flow = estimate_flow(weight, coverage, config)

    report = build_report(
        timestamp=now or datetime.now(timezone.utc),
        coverage=coverage,
        clots=clots,
        dark_regions=dark_regions,
        flow=flow,
        components_found=len(components),
        avg_blood_value=avg_value,
        config=config,
    )
    logger.info("Analysis done: risk=%s flow=%s clots=%d dark_regions=%d coverage=%.3f",
                report.risk_level, flow.level, len(clots), len(dark_regions), coverage)
    return _Run(report, raster)


def working_scale(scale_px_per_cm: Optional[float], source_shape: Tuple[int, int],
                  working_shape: Tuple[int, int]) -> Optional[float]:
    """Rescale a source-image px/cm scale to a resized raster of ``working_shape``."""
    if scale_px_per_cm is None:
        return None
    (source_h, source_w), (h, w) = source_shape, working_shape
    if (h, w) == (source_h, source_w):
        return scale_px_per_cm
    # area ratio of the two rasters; the axes may round differently
    return scale_px_per_cm * math.sqrt((w / source_w) * (h / source_h))


def _check_weight(weight_g: Any) -> float:
    try:
        weight = float(weight_g)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"weight_g must be a number, got {weight_g!r}") from None
    if not math.isfinite(weight):
        raise InvalidConfigurationError(f"weight_g must be finite, got {weight_g!r}")
    return weight
