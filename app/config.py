"""
UniformFlow configuration.

All tunable parameters live here so the sizing and analytics engines
are fully configurable without touching algorithmic code.
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field


class SizingConfig(BaseSettings):
    """Size recommendation parameters."""

    # Tolerance band around each chart range, as a fraction of min / max
    outside_tolerance_ratio: float = 0.05
    partial_ratio: float = 0.5  # share of the weight awarded inside the band

    # Minimum winning score before falling back to manual sizing
    garment_min_score: float = 6.0  # of 11
    pants_min_score: float = 4.0  # of 8


class AnalyticsConfig(BaseSettings):
    """Dashboard window and bucketing parameters."""

    default_days: int = 30
    min_days: int = 7
    max_days: int = 365

    default_hours: int = 24
    min_hours: int = 1
    max_hours: int = 168

    # Used when no settings document has been stored yet
    dashboard_charts_enabled_default: bool = False


class StorageConfig(BaseSettings):
    """Record storage paths."""

    data_dir: Path = Path("/tmp/uniformflow/data")

    @property
    def reservation_dir(self) -> Path:
        return self.data_dir / "reservations"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def directory_path(self) -> Path:
        return self.data_dir / "supplier_links.json"


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    app_name: str = "UniformFlow"
    version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    api_key_header: str = "X-API-Key"
    cors_origins: list[str] = ["*"]

    # Served through the settings document; enforced by child registration
    default_max_children_per_user: int = 7

    sizing: SizingConfig = Field(default_factory=SizingConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


config = AppConfig()
