"""Shared Pydantic data models for the price engine.

These models define the data contracts between the ingestion side
(which produces observations), the consensus engine, and the storage
side (which persists aggregates). All modules import from here.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# === Enums ===

class PriceTrend(str, Enum):
    """Direction of price movement between the recent and older windows."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# === Input: observations ===

class PriceObservation(BaseModel):
    """Single price observation for an item, as delivered by ingestion.

    A missing grade or sale date is an explicit ``None``; the engine
    decides how to treat it.
    """
    model_config = {"frozen": True}

    item_id: str = Field(min_length=1)
    source_name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    source_reliability: Decimal = Field(ge=0, le=1)
    observation_confidence: Decimal = Field(ge=0, le=1)
    grade: str | None = None
    sale_date: datetime | None = None

    @field_validator("grade")
    @classmethod
    def _blank_grade_is_missing(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == "unknown":
            return None
        return value

    @field_validator("sale_date")
    @classmethod
    def _sale_date_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value) if value is not None else None


# === Output: aggregates ===

class AggregatedPrice(BaseModel):
    """Consensus price for one (item_id, grade) key."""
    item_id: str
    grade: str
    current_avg_price: Decimal
    min_price: Decimal
    max_price: Decimal
    price_trend: PriceTrend = PriceTrend.STABLE
    trend_percentage: Decimal = Decimal("0")
    sample_size: int = Field(ge=0)
    confidence_level: Decimal = Field(ge=0, le=1)
    price_sources: list[str] = Field(default_factory=list)
    last_updated: datetime

    @field_validator("price_sources")
    @classmethod
    def _distinct_sorted_sources(cls, value: list[str]) -> list[str]:
        return sorted(set(value))

    @field_validator("last_updated")
    @classmethod
    def _last_updated_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def key(self) -> tuple[str, str]:
        return (self.item_id, self.grade)

    def to_row(self) -> dict:
        """Serialize for storage: decimals as strings, sources as JSON."""
        return {
            "item_id": self.item_id,
            "grade": self.grade,
            "current_avg_price": str(self.current_avg_price),
            "min_price": str(self.min_price),
            "max_price": str(self.max_price),
            "price_trend": self.price_trend.value,
            "trend_percentage": str(self.trend_percentage),
            "sample_size": self.sample_size,
            "confidence_level": str(self.confidence_level),
            "price_sources": json.dumps(self.price_sources),
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict) -> AggregatedPrice:
        """Inverse of to_row()."""
        data = dict(row)
        sources = data.get("price_sources") or "[]"
        if isinstance(sources, str):
            data["price_sources"] = json.loads(sources)
        return cls(**data)
