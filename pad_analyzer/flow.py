import numpy as np

from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.schemas import FlowEstimate
from pad_analyzer.utils import round_half_up

LIGHT = "light"
MODERATE = "moderate"
HEAVY = "heavy"
CRITICAL = "critical"

FLOW_DESCRIPTIONS = {
    LIGHT: "Light Flow",
    MODERATE: "Moderate Flow",
    HEAVY: "Heavy Flow",
    CRITICAL: "Critically High Flow",
}


def estimate_coverage(raster: np.ndarray, mask: np.ndarray, config: AnalyzerConfig) -> float:
    """Fraction of non-background pixels that are in the blood mask.

    Background is near-white pad or paper: every channel above
    ``background_channel_min``.
    """
    background = np.all(raster[..., :3] > config.background_channel_min, axis=-1)
    foreground = ~background
    total = int(np.count_nonzero(foreground))
    if total == 0:
        return 0.0
    return int(np.count_nonzero(mask & foreground)) / total


def flow_level(estimated_ml: float, config: AnalyzerConfig) -> str:
    if estimated_ml < config.flow_moderate_ml:
        return LIGHT
    if estimated_ml < config.flow_heavy_ml:
        return MODERATE
    if estimated_ml < config.flow_critical_ml:
        return HEAVY
    return CRITICAL


def estimate_flow(weight_g: float, coverage: float, config: AnalyzerConfig) -> FlowEstimate:
    """Volume from pad weight minus its dry weight (1 g of blood taken as 1 ml)."""
    estimated_ml = max(0.0, weight_g - config.pad_dry_weight_grams)
    level = flow_level(estimated_ml, config)
    return FlowEstimate(
        level=level,
        description=FLOW_DESCRIPTIONS[level],
        estimated_ml=round_half_up(estimated_ml, 1),
        coverage_percent=int(round_half_up(coverage * 100)),
    )
