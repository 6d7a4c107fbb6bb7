"""Pydantic schema models for DriveLedger."""

import math
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TelemetrySample(BaseModel):
    """One OBD-II reading, recorded or simulated."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    speed_kmph: float = 0.0
    engine_rpm: int = 0
    fuel_level_pct: float = 0.0
    engine_temp_c: float = 0.0
    lat: float = 0.0
    lon: float = 0.0
    timestamp: Optional[str] = None
    dtc_code: str = ""
    route_type: Optional[str] = None

    @field_validator("engine_rpm", mode="before")
    @classmethod
    def _round_rpm(cls, v):
        if v is None or v == "":
            return 0
        try:
            rpm = float(v)
        except TypeError:
            raise ValueError("engine_rpm must be a number") from None
        if not math.isfinite(rpm):
            raise ValueError("engine_rpm must be a finite number")
        return int(round(rpm))

    @field_validator("dtc_code", mode="before")
    @classmethod
    def _blank_dtc(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @property
    def has_dtc(self) -> bool:
        return bool(self.dtc_code)


class RouteProfile(BaseModel):
    """Static kinematic parameters of a route archetype."""

    model_config = ConfigDict(frozen=True)

    route_type: str
    name: str
    description: str
    average_speed: float
    max_speed: float
    traffic_density: str
    distance_km: float
    estimated_minutes: float
    fuel_consumption: str
    elevation_change: str


class DiagnosticEntry(BaseModel):
    """Catalog entry for a diagnostic trouble code."""

    model_config = ConfigDict(frozen=True)

    code: str
    description: str
    severity: str
    impact: str
    reward_impact: float  # signed percent


class DataCategory(BaseModel):
    """Marketplace data category with its per-point base value."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    privacy_impact: str
    base_value: float
    fields: tuple[str, ...]


class DiagnosticIssue(BaseModel):
    count: int
    description: str
    severity: str
    impact: str


class DiagnosticIssues(BaseModel):
    total_occurrences: int = 0
    by_code: Dict[str, DiagnosticIssue] = Field(default_factory=dict)


class FuelConsumption(BaseModel):
    fuel_used_percent: float
    distance_km: float
    avg_consumption: float
    efficiency: float


class SimulationSummary(BaseModel):
    """Statistics sealed at the end of a simulation."""

    model_config = ConfigDict(frozen=True)

    route_type: str
    route_name: str
    data_points_collected: int
    duration_minutes: float
    distance_km: float
    average_speed_kmph: float
    max_speed_kmph: float
    fuel_used_percent: float
    fuel_efficiency: float
    diagnostic_issues: DiagnosticIssues
    efficiency_score: int
    potential_reward: float
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


# --- request bodies ---

class StartSimulationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route_type: str = Field(alias="routeType")
    duration_minutes: float = Field(default=10, gt=0, alias="durationMinutes")


class SamplesRequest(BaseModel):
    samples: list[TelemetrySample] = Field(default_factory=list)


class EfficiencyRequest(SamplesRequest):
    window: int = Field(default=60, gt=0)


class EstimateValueRequest(SamplesRequest):
    model_config = ConfigDict(populate_by_name=True)

    data_type: str = Field(default="COMPLETE", alias="dataType")


class LoadSamplesRequest(BaseModel):
    json_path: Optional[str] = None
    csv_path: Optional[str] = None
