from typing import List, Optional, Sequence, Tuple

from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.models import CLOT, DARK_REGION, ClassifiedRegion, Component
from pad_analyzer.utils import round_half_up


def pixels_to_cm2(pixels: int, scale_px_per_cm: Optional[float]) -> Optional[float]:
    """Physical area of ``pixels``, rounded to 0.1 cm2; ``None`` when uncalibrated."""
    if not scale_px_per_cm or scale_px_per_cm <= 0:
        return None
    return round_half_up(pixels / (scale_px_per_cm * scale_px_per_cm), 1)


def _confidence(base: float, darker_than_blood: float, weight: float, cap: int) -> int:
    score = int(round_half_up(base + darker_than_blood * weight))
    return max(0, min(cap, score))


def classify_component(component: Component, avg_blood_value: float, config: AnalyzerConfig,
                       scale_px_per_cm: Optional[float] = None) -> Optional[ClassifiedRegion]:
    """Label ``component`` as a clot or dark region, or return ``None``.

    ``scale_px_per_cm`` is the scale of the raster the component was found in;
    it defaults to ``config.scale_px_per_cm``.
    """
    if not config.min_clot_pixels <= component.pixel_count <= config.max_clot_pixels:
        return None

    mean_value = component.mean_value
    mean_saturation = component.mean_saturation
    darker = avg_blood_value - mean_value

    if mean_value <= config.value_max_for_clot and mean_saturation <= config.clot_saturation_max:
        kind, confidence = CLOT, _confidence(50, darker, 300, 98)
    elif (config.value_max_for_clot < mean_value <= config.value_max_for_dark_region
          and mean_saturation > config.dark_region_saturation_min
          and darker > config.dark_region_min_darkening):
        kind, confidence = DARK_REGION, _confidence(40, darker, 250, 90)
    else:
        return None

    return ClassifiedRegion(
        kind=kind,
        pixel_count=component.pixel_count,
        bbox=component.bbox,
        mean_value=mean_value,
        mean_saturation=mean_saturation,
        darker_than_blood=darker,
        confidence=confidence,
        estimated_cm2=pixels_to_cm2(
            component.pixel_count, config.scale_px_per_cm if scale_px_per_cm is None else scale_px_per_cm),
    )


def classify_components(components: Sequence[Component], avg_blood_value: float, config: AnalyzerConfig,
                        scale_px_per_cm: Optional[float] = None) -> Tuple[List[ClassifiedRegion], List[ClassifiedRegion]]:
    """Return ``(clots, dark_regions)``, each darkest first and capped at ``max_regions_per_kind``."""
    clots = []
    dark_regions = []
    for component in components:
        region = classify_component(component, avg_blood_value, config, scale_px_per_cm)
        if region is None:
            continue
        if region.kind == CLOT:
            clots.append(region)
        else:
            dark_regions.append(region)

    limit = config.max_regions_per_kind
    clots.sort(key=lambda r: r.mean_value)
    dark_regions.sort(key=lambda r: r.mean_value)
    return clots[:limit], dark_regions[:limit]
