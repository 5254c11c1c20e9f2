from dataclasses import dataclass
from typing import Optional, Tuple

CLOT = "clot"
DARK_REGION = "dark_region"


@dataclass
class Component:
    """A 4-connected group of mask pixels with running HSV sums."""
    pixel_count: int
    bbox: Tuple[int, int, int, int]  # (min_x, min_y, max_x, max_y)
    sum_value: float
    sum_saturation: float

    @property
    def mean_value(self) -> float:
        return self.sum_value / self.pixel_count if self.pixel_count else 0.0

    @property
    def mean_saturation(self) -> float:
        return self.sum_saturation / self.pixel_count if self.pixel_count else 0.0


@dataclass
class ClassifiedRegion:
    """A component that survived the size gate and was labelled clot or dark region."""
    kind: str
    pixel_count: int
    bbox: Tuple[int, int, int, int]
    mean_value: float
    mean_saturation: float
    darker_than_blood: float
    confidence: int
    estimated_cm2: Optional[float] = None
