"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
DATA_EXPORTS_DIR = DATA_DIR / "exports"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class DatabaseSettings(BaseModel):
    """Database connection settings."""
    db_path: str = str(DATA_DIR / "price_engine.db")


class AggregationSettings(BaseModel):
    """Tunables for the price-consensus engine."""

    # Recency decay
    recency_horizon_days: Decimal = Decimal("365")
    min_recency_weight: Decimal = Decimal("0.1")

    # Trend windows (days) and classification threshold (percent)
    recent_window_days: Decimal = Decimal("30")
    older_window_days: Decimal = Decimal("90")
    trend_threshold_pct: Decimal = Decimal("5")

    # Confidence: saturation targets and term weights
    sample_size_target: int = Field(default=10, gt=0)
    source_diversity_target: int = Field(default=3, gt=0)
    sample_size_weight: Decimal = Decimal("0.4")
    source_diversity_weight: Decimal = Decimal("0.3")
    avg_weight_weight: Decimal = Decimal("0.3")

    # Rounding (decimal places)
    price_places: int = 2
    percentage_places: int = 2
    confidence_places: int = 4


class SupabaseSettings(BaseModel):
    """Supabase project settings (credentials come from the environment)."""
    url: str = ""
    service_key: str = ""
    observations_table: str = "price_observations"
    aggregates_table: str = "aggregated_prices"


class Settings(BaseModel):
    """Top-level application settings."""
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    log_level: str = "INFO"

    @classmethod
    def load(cls, settings_path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults.

        Environment variables override values from the file.
        """
        settings_path = settings_path or CONFIG_DIR / "settings.yaml"
        data: dict = {}
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        loaded = cls(**data)
        loaded._apply_env_overrides()
        return loaded

    def _apply_env_overrides(self) -> None:
        if db_path := os.getenv("DATABASE_PATH"):
            self.database.db_path = db_path
        if url := os.getenv("SUPABASE_URL"):
            self.supabase.url = url
        if key := os.getenv("SUPABASE_SERVICE_KEY"):
            self.supabase.service_key = key
        if level := os.getenv("PRICE_ENGINE_LOG_LEVEL"):
            self.log_level = level.upper()

    @property
    def database_abs_path(self) -> Path:
        """Resolve database path relative to project root."""
        p = Path(self.database.db_path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


# Singleton settings instance
settings = Settings.load()
