"""Trend detection over two time windows.

Compares the simple mean price of a recent window (age ≤ 30 days) with an
older window (30 < age ≤ 90 days). Movement beyond ±5% is rising/falling;
anything else, including a missing window, is stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from src.common.config import AggregationSettings
from src.common.models import PriceTrend

from .weighting import WeightedObservation, quantize

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class TrendResult:
    """Outcome of comparing the recent and older windows."""

    trend: PriceTrend
    trend_percentage: Decimal
    recent_count: int = 0
    older_count: int = 0
    recent_avg: Decimal | None = None
    older_avg: Decimal | None = None

    def to_dict(self) -> dict:
        return {
            "trend": self.trend.value,
            "trend_percentage": str(self.trend_percentage),
            "recent_count": self.recent_count,
            "older_count": self.older_count,
            "recent_avg": str(self.recent_avg) if self.recent_avg is not None else None,
            "older_avg": str(self.older_avg) if self.older_avg is not None else None,
        }


def classify_trend(
    trend_percentage: Decimal,
    threshold: Decimal = Decimal("5"),
) -> PriceTrend:
    """Strictly above +threshold is rising, strictly below −threshold falling."""
    if trend_percentage > threshold:
        return PriceTrend.RISING
    if trend_percentage < -threshold:
        return PriceTrend.FALLING
    return PriceTrend.STABLE


def split_windows(
    weighted: list[WeightedObservation],
    config: AggregationSettings | None = None,
) -> tuple[list[Decimal], list[Decimal]]:
    """Return (recent_prices, older_prices). Undated observations are skipped."""
    config = config or AggregationSettings()
    recent: list[Decimal] = []
    older: list[Decimal] = []
    for w in weighted:
        if w.age_days is None:
            continue
        if w.age_days <= config.recent_window_days:
            recent.append(w.price)
        elif w.age_days <= config.older_window_days:
            older.append(w.price)
    return recent, older


def analyze_trend(
    weighted: list[WeightedObservation],
    config: AggregationSettings | None = None,
) -> TrendResult:
    """Classify the price direction of a grade group."""
    config = config or AggregationSettings()
    recent, older = split_windows(weighted, config)

    if not recent or not older:
        return TrendResult(
            trend=PriceTrend.STABLE,
            trend_percentage=_ZERO,
            recent_count=len(recent),
            older_count=len(older),
        )

    recent_avg = sum(recent, _ZERO) / Decimal(len(recent))
    older_avg = sum(older, _ZERO) / Decimal(len(older))

    if older_avg == 0:
        logger.debug("Older window averages zero; trend reported as stable")
        return TrendResult(
            trend=PriceTrend.STABLE,
            trend_percentage=_ZERO,
            recent_count=len(recent),
            older_count=len(older),
            recent_avg=recent_avg,
            older_avg=older_avg,
        )

    # Classified on the exact change; only the stored percentage is rounded
    pct = (recent_avg - older_avg) / older_avg * _HUNDRED
    return TrendResult(
        trend=classify_trend(pct, config.trend_threshold_pct),
        trend_percentage=quantize(pct, config.percentage_places),
        recent_count=len(recent),
        older_count=len(older),
        recent_avg=recent_avg,
        older_avg=older_avg,
    )
