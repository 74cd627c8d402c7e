"""Application configuration and settings management."""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="MIDNIGHT_ROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    data_root: Path = Field(default=Path("data"), description="Root directory for input and output files.")
    locations_file: Path = Field(
        default=Path("data/locations.csv"),
        description="Source location dataset.",
    )
    output_file: Path = Field(
        default=Path("data/route.csv"),
        description="Destination for the generated stop list.",
    )

    origin_name: str = Field(default="North Pole", description="Synthetic start/end waypoint name.")
    origin_country: str = "Arctic"
    origin_latitude: float = Field(default=90.0, ge=-90.0, le=90.0)
    origin_longitude: float = Field(default=0.0, ge=-180.0, le=180.0)
    origin_timezone: str = "UTC+14"
    origin_utc_offset: float = Field(default=14.0, ge=-12.0, le=14.0)

    flight_date: date = Field(
        default=date(2025, 12, 25),
        description="Calendar date whose local midnight the first timezone arrives at.",
    )
    reference_midnight_utc: Optional[datetime] = Field(
        default=None,
        description="Explicit UTC instant of the first timezone's midnight; overrides flight_date.",
    )
    midnight_step: Literal["position", "offset"] = Field(
        default="position",
        description="'position' spaces timezones one UTC hour apart by order; 'offset' by offset difference.",
    )

    cluster_radius_km: float = Field(default=24.0, ge=0.0)
    two_opt_max_iterations: int = Field(default=1000, ge=0)
    perturb_clusters: bool = True
    random_seed: Optional[int] = None

    fallback_speed_kmh: float = Field(
        default=50000.0,
        gt=0.0,
        description="Speed used when a timezone or the return leg has no distance to derive one from.",
    )
    geojson_step_km: float = Field(default=250.0, gt=0.0)

    @field_validator("data_root", "locations_file", "output_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("reference_midnight_utc", mode="after")
    @classmethod
    def _ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


settings = Settings()
