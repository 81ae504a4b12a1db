"""
Data schemas and models for the bio bricks engine using Pydantic.
"""

import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator


class ConversionSettings(BaseModel):
    """Brick and landfill conversion parameters"""
    brick_mass: float = Field(..., gt=0)  # kg per brick
    brick_volume: float = Field(..., gt=0)  # m^3 per brick
    landfill_area: float = Field(..., gt=0)  # m^2
    landfill_depth: float = Field(..., gt=0)  # m

    @validator('brick_mass', 'brick_volume', 'landfill_area', 'landfill_depth')
    def validate_finite(cls, v):
        if not math.isfinite(v):
            raise ValueError("Setting must be a finite number")
        return v


# Persisted/public setting name -> ConversionSettings field
SETTING_FIELDS = {
    "brickMass": "brick_mass",
    "brickVolume": "brick_volume",
    "landfillArea": "landfill_area",
    "landfillDepth": "landfill_depth",
}


class UpdateStatus(str, Enum):
    OK = "ok"
    CLAMPED = "clamped"
    LABEL_NOT_FOUND = "label_not_found"
    UNKNOWN_SETTING = "unknown_setting"
    REJECTED = "rejected"


class UpdateResult(BaseModel):
    """Outcome of a single value or setting mutation"""
    status: UpdateStatus
    target: str
    value: Optional[float] = None  # value held after the call
    previous: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status in (UpdateStatus.OK, UpdateStatus.CLAMPED)


class ImportReport(BaseModel):
    """What an import did with each external key"""
    matched: Dict[str, List[str]] = Field(default_factory=dict)
    unmatched: List[str] = Field(default_factory=list)
    malformed: List[str] = Field(default_factory=list)

    @property
    def updated_labels(self) -> List[str]:
        labels: List[str] = []
        for matched_labels in self.matched.values():
            for label in matched_labels:
                if label not in labels:
                    labels.append(label)
        return labels


class ConversionSummary(BaseModel):
    """Snapshot of all derived metrics"""
    total_waste_kg: float = Field(..., ge=0)
    bricks: int = Field(..., ge=0)
    volume_diverted_m3: float = Field(..., ge=0)
    area_reduced_m2: float = Field(..., ge=0)
    percent_reduced: float = Field(..., ge=0, le=100)
    progress: float = Field(..., ge=0, le=1)  # percent_reduced as a 0-1 fraction
