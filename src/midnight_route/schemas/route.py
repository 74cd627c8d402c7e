"""Route generation report schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class BucketSummary(BaseModel):
    utc_offset: int
    heading: str
    stop_count: int = Field(..., ge=0)
    origin_leg_km: float = Field(0.0, ge=0)
    tour_distance_km: float = Field(..., ge=0)
    construction_distance_km: float = Field(..., ge=0)
    optimized_distance_km: float = Field(..., ge=0)
    transit_out_km: float = Field(..., ge=0)
    speed_kmh: float = Field(..., gt=0)
    speed_fallback: bool = False
    midnight_utc: datetime
    first_stop: Optional[str] = None
    last_stop: Optional[str] = None


class FlightWindow(BaseModel):
    """Start and end of the finished route, in every shape downstream clients read."""

    live_flight_file: str
    start: str = Field(..., description="First stop UTC time, 'YYYY-MM-DD HH:MM:SS'.")
    end: str = Field(..., description="Last stop UTC time, 'YYYY-MM-DD HH:MM:SS'.")
    start_iso: str
    end_iso: str
    start_ms: int
    end_ms: int


class RouteSummary(BaseModel):
    stop_count: int
    timezone_count: int
    total_distance_km: float
    time_span_hours: float
    average_speed_kmh: float
    return_speed_kmh: float
    reference_midnight_utc: datetime
    buckets: List[BucketSummary]
