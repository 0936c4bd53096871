"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_PLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Route Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied when the app is created.")
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted run outputs.")

    distance_provider: Literal["osrm", "google", "haversine"] = Field(
        default="osrm",
        description="Backend used for pairwise travel distance lookups.",
    )
    travel_mode: str = Field(default="driving", description="Travel mode passed to every distance lookup.")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)
    google_maps_api_key: Optional[str] = Field(default=None, description="Google Maps platform API key.")
    google_maps_base_url: str = Field(default="https://maps.googleapis.com/maps/api")

    distance_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Upper bound for a single distance lookup; a timeout counts as a failed lookup.",
    )
    max_concurrent_lookups: int = Field(
        default=1,
        ge=1,
        description="Maximum in-flight lookups while building a distance matrix (1 = sequential).",
    )
    lazy_matrix: bool = Field(default=False, description="Look up matrix entries only when routing touches them.")
    improve_with_two_opt: bool = Field(default=False, description="Run a 2-opt pass after nearest-neighbor.")
    haversine_fallback: bool = Field(
        default=True,
        description="Rebuild the matrix with great-circle estimates when the provider gives no usable data.",
    )
    average_speed_kmh: float = Field(default=30.0, gt=0.0, description="Average urban speed for local estimates.")

    depot_latitude: float = Field(default=40.7128, ge=-90.0, le=90.0)
    depot_longitude: float = Field(default=-74.0060, ge=-180.0, le=180.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
