from datetime import datetime
from typing import List, Sequence

from pad_analyzer import flow as flow_levels
from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.models import ClassifiedRegion
from pad_analyzer.schemas import (
    AnalysisReport,
    BoundingBox,
    Findings,
    FlowEstimate,
    RawDiagnostics,
    RegionFinding,
)
from pad_analyzer.utils import round_half_up

RISK_LOW = "low"
RISK_MODERATE = "moderate"
RISK_HIGH = "high"


def assess_risk(estimated_ml: float, clot_found: bool, config: AnalyzerConfig) -> str:
    if estimated_ml >= config.risk_high_ml:
        return RISK_HIGH
    if clot_found:
        return RISK_MODERATE
    if estimated_ml < config.risk_low_max_ml:
        return RISK_LOW
    return RISK_MODERATE


def has_large_clot(clots: Sequence[ClassifiedRegion], config: AnalyzerConfig) -> bool:
    return any(c.estimated_cm2 is not None and c.estimated_cm2 >= config.large_clot_cm2 for c in clots)


def build_findings(flow: FlowEstimate, coverage: float, clots: Sequence[ClassifiedRegion],
                   dark_regions: Sequence[ClassifiedRegion], config: AnalyzerConfig) -> List[str]:
    findings = [
        f"{flow.description} (Estimated blood loss: {flow.estimated_ml} ml)",
        f"Visual Coverage: {int(round_half_up(coverage * 100))}% of non-background area is blood-colored.",
    ]
    if clots:
        findings.append(f"{len(clots)} blood clot(s) detected (black regions).")
    if dark_regions:
        findings.append(f"{len(dark_regions)} dark region(s) detected (concentrated darker red areas).")
    if has_large_clot(clots, config):
        findings.append(f"One or more large blood clots (>= {config.large_clot_cm2}cm²) detected.")
    if flow.level == flow_levels.CRITICAL:
        findings.append(f"Flow volume is critically high (>{config.flow_critical_ml:g}mL).")
    elif flow.level == flow_levels.HEAVY:
        findings.append(f"Heavy flow detected ({config.flow_heavy_ml:g}mL to "
                        f"{config.flow_critical_ml - 0.1:g}mL).")
    return findings


def build_recommendations(risk_level: str, flow: FlowEstimate, clots: Sequence[ClassifiedRegion],
                          config: AnalyzerConfig) -> List[str]:
    rec = []
    if risk_level == RISK_HIGH or flow.level == flow_levels.CRITICAL:
        rec.append("IMMEDIATE CLINICAL ASSESSMENT RECOMMENDED. "
                   f"Estimated blood loss is {config.risk_high_ml:g}mL or higher.")
        rec.append("High volume of loss and/or critical flow detected. Monitor vitals closely.")
    elif risk_level == RISK_MODERATE:
        rec.append("Monitor closely; re-check in 30-60 minutes. "
                   "Presence of blood clots indicates a potential concern.")
    else:
        rec.append("Routine monitoring recommended. Flow volume is low and no blood clots were detected.")

    if has_large_clot(clots, config):
        rec.append(f"Document large blood clots (>= {config.large_clot_cm2}cm²) and consider clinical assessment.")

    if flow.level == flow_levels.HEAVY:
        rec.append("Heavy flow detected: ensure adequate hydration and monitor for signs of excessive blood loss.")
    return rec


def region_finding(region: ClassifiedRegion) -> RegionFinding:
    min_x, min_y, max_x, max_y = region.bbox
    return RegionFinding(
        estimated_cm2=region.estimated_cm2,
        pixels=region.pixel_count,
        mean_value=round_half_up(region.mean_value, 2),
        mean_saturation=round_half_up(region.mean_saturation, 2),
        darker_than_blood=round_half_up(region.darker_than_blood, 2),
        confidence=region.confidence,
        bbox=BoundingBox(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y),
    )


def build_report(*, timestamp: datetime, coverage: float, clots: Sequence[ClassifiedRegion],
                 dark_regions: Sequence[ClassifiedRegion], flow: FlowEstimate, components_found: int,
                 avg_blood_value: float, config: AnalyzerConfig) -> AnalysisReport:
    risk_level = assess_risk(flow.estimated_ml, bool(clots), config)
    return AnalysisReport(
        timestamp=timestamp,
        findings=Findings(
            blood_detected=coverage > config.blood_detected_coverage,
            coverage=coverage,
            clots=[region_finding(c) for c in clots],
            dark_regions=[region_finding(d) for d in dark_regions],
            clot_count=len(clots),
            dark_region_count=len(dark_regions),
            flow=flow,
            estimated_blood_loss_ml=flow.estimated_ml,
        ),
        recommendations=build_recommendations(risk_level, flow, clots, config),
        risk_level=risk_level,
        raw=RawDiagnostics(
            components_found=components_found,
            avg_blood_value=avg_blood_value,
            all_findings=build_findings(flow, coverage, clots, dark_regions, config),
        ),
    )
