from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    # Python code uses snake_case; JSON consumers see camelCase.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BoundingBox(WireModel):
    min_x: int
    min_y: int
    max_x: int
    max_y: int


class RegionFinding(WireModel):
    estimated_cm2: Optional[float] = None
    pixels: int
    mean_value: float
    mean_saturation: float
    darker_than_blood: float
    confidence: int
    bbox: BoundingBox


class FlowEstimate(WireModel):
    level: str  # light / moderate / heavy / critical
    description: str
    estimated_ml: float
    coverage_percent: int = Field(alias="visualCoveragePercent")


class Findings(WireModel):
    blood_detected: bool
    coverage: float
    clots: List[RegionFinding]
    dark_regions: List[RegionFinding]
    clot_count: int
    dark_region_count: int
    flow: FlowEstimate
    estimated_blood_loss_ml: float


class RawDiagnostics(WireModel):
    components_found: int
    avg_blood_value: float
    all_findings: List[str]


class AnalysisReport(WireModel):
    timestamp: datetime
    findings: Findings
    recommendations: List[str]
    risk_level: str  # low / moderate / high
    raw: RawDiagnostics

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with the camelCase field names downstream layers read."""
        return self.model_dump(mode="json", by_alias=True)


class AnnotatedAnalysisResponse(WireModel):
    report: AnalysisReport
    annotated_image: str  # data:image/png;base64,...


class CalibrationRequest(WireModel):
    pad_width_cm: float
    image_pad_width_px: float


class CalibrationResponse(WireModel):
    scale_px_per_cm: float
