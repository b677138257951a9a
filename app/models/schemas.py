"""
Pydantic models for API request/response and internal data transfer.

Wire names are camelCase (``createdAt``, ``suggestedSize``); Python
attributes stay snake_case.  Both spellings are accepted on input.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.status import (
    EventType,
    ReservationStatus,
    normalize_status,
)
from app.models.timestamps import as_utc, coerce_datetime


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Enums ──────────────────────────────────────────────────────────────

class SizeChartKind(str, Enum):
    garment = "garment"  # PP / P / M / G / GG
    pants = "pants"  # 2 .. 14


class BucketUnit(str, Enum):
    day = "day"
    hour = "hour"


# ── Measurements ───────────────────────────────────────────────────────

def _cm(description: str):
    return Field(..., gt=0, allow_inf_nan=False, description=description)


class Measurements(ApiModel):
    """Body measurements in centimeters for upper-body garments."""
    height: float = _cm("Body height")
    chest: float = _cm("Chest circumference")
    waist: float = _cm("Waist circumference")
    hips: float = _cm("Hip circumference")


class PantsMeasurements(ApiModel):
    """Body measurements in centimeters for lower-body garments."""
    height: float = _cm("Body height")
    waist: float = _cm("Waist circumference")
    hips: float = _cm("Hip circumference")


# ── Size recommendation ────────────────────────────────────────────────

class SizeRecommendation(ApiModel):
    chart: SizeChartKind
    size: str  # chart label or "MANUAL"
    score: float = Field(..., ge=0.0)
    max_score: float = Field(..., gt=0.0)
    confidence: float = Field(..., ge=0.0, le=1.0)

    @property
    def is_manual(self) -> bool:
        return self.size == "MANUAL"


class SizingRequest(Measurements):
    available_sizes: list[str] | None = None


class PantsSizingRequest(PantsMeasurements):
    available_sizes: list[str] | None = None


class SizingResponse(ApiModel):
    size: str
    score: float
    max_score: float
    confidence: float
    message: str
    adapted_size: str | None = None


# ── Reservations ───────────────────────────────────────────────────────

class ReservationEvent(ApiModel):
    type: EventType
    at: datetime
    status: ReservationStatus | None = None
    actor_role: str | None = None
    actor_user_id: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, v):
        return None if v is None else normalize_status(v)

    @field_validator("at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Reservation(ApiModel):
    id: str
    user_name: str
    user_id: str
    child_id: str
    school_id: str
    uniform_id: str
    supplier_id: str | None = None
    measurements: Measurements | None = None
    suggested_size: str
    reservation_year: int = Field(..., ge=1970, le=9999)
    status: ReservationStatus = ReservationStatus.aguardando
    events: list[ReservationEvent] = Field(default_factory=list)
    value: float = Field(0.0, ge=0.0)
    version: int = 0
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, v):
        return normalize_status(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("events", mode="before")
    @classmethod
    def _drop_unreadable_events(cls, v):
        # Events whose timestamp cannot be read are left out, as on the analytics path
        if not isinstance(v, list):
            return []
        return [
            e for e in v
            if isinstance(e, ReservationEvent)
            or (isinstance(e, Mapping) and coerce_datetime(e.get("at")) is not None)
        ]


class ReservationCreateRequest(ApiModel):
    user_name: str = Field(..., min_length=1)
    child_id: str = Field(..., min_length=1)
    school_id: str = Field(..., min_length=1)
    uniform_id: str = Field(..., min_length=1)
    supplier_id: str | None = None
    measurements: Measurements | None = None
    suggested_size: str | None = None
    value: float = Field(0.0, ge=0.0, allow_inf_nan=False)


class StatusUpdateRequest(ApiModel):
    # Plain string: unknown values are rejected with 400 by the route
    status: str
    expected_version: int | None = None


# ── Analytics ──────────────────────────────────────────────────────────

class CfdPoint(ApiModel):
    date: str
    aguardando: int = 0
    recebida: int = 0
    em_processamento: int = Field(0, alias="em-processamento")
    finalizada: int = 0
    entregue: int = 0
    cancelada: int = 0


class ThroughputPoint(ApiModel):
    date: str
    entregues: int = 0
    canceladas: int = 0


class CycleTimePoint(ApiModel):
    date: str
    count: int = 0
    median_days: float = 0.0
    p90_days: float = 0.0


class AgingBucketCount(ApiModel):
    bucket: str
    count: int


class StatusCount(ApiModel):
    status: ReservationStatus
    count: int


class DashboardAnalytics(ApiModel):
    """Dashboard payload; only the flag is set when charts are disabled."""
    dashboard_charts_enabled: bool
    range_unit: str | None = None
    range_value: int | None = None
    bucket_unit: BucketUnit | None = None
    range_days: int | None = None
    cfd: list[CfdPoint] | None = None
    throughput: list[ThroughputPoint] | None = None
    cycle_time: list[CycleTimePoint] | None = None
    aging_wip: list[AgingBucketCount] | None = None
    stale_by_status: list[StatusCount] | None = None


# ── Settings ───────────────────────────────────────────────────────────

class AppSettings(ApiModel):
    """
    Runtime switches stored in the settings document.

    ``max_children_per_user`` is only stored and served here; the child
    registration flow that enforces it lives outside this service.
    """

    dashboard_charts_enabled: bool = False
    max_children_per_user: int = Field(7, ge=1)


class SettingsUpdateRequest(ApiModel):
    dashboard_charts_enabled: bool | None = None
    max_children_per_user: int | None = Field(None, ge=1)


# ── API misc ───────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: str
