# Common utilities and shared modules
"""
Shared components used by the engine and the storage adapters:
- Data models (Pydantic schemas)
- Database utilities
- Logging configuration
- Project configuration
"""

from .config import settings, AggregationSettings, Settings, PROJECT_ROOT, DATA_DIR
from .database import get_connection, init_db
from .logging import setup_logging
from .models import AggregatedPrice, PriceObservation, PriceTrend

__all__ = [
    "settings",
    "AggregationSettings",
    "Settings",
    "PROJECT_ROOT",
    "DATA_DIR",
    "get_connection",
    "init_db",
    "setup_logging",
    "AggregatedPrice",
    "PriceObservation",
    "PriceTrend",
]
