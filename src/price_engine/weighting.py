"""Weighted aggregation of a grade group's prices.

Each observation is weighted by:

    weight = source_reliability × recency_weight × observation_confidence
    recency_weight = max(floor, 1 − age_days / horizon)

and the group price is the weighted mean Σ(price × weight) / Σ(weight).
All arithmetic is Decimal; an all-zero weight group yields 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal

from src.common.config import AggregationSettings
from src.common.models import PriceObservation

_ZERO = Decimal("0")
_ONE = Decimal("1")
_SECONDS_PER_DAY = Decimal("86400")
_MICROSECONDS_PER_DAY = Decimal("86400000000")


@dataclass(frozen=True)
class WeightedObservation:
    """An observation together with its computed age and weights."""

    observation: PriceObservation
    age_days: Decimal | None  # None when sale_date is missing
    recency_weight: Decimal
    weight: Decimal

    @property
    def price(self) -> Decimal:
        return self.observation.price


def quantize(value: Decimal, places: int) -> Decimal:
    """Round to a fixed number of decimal places (banker's rounding)."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)


def age_in_days(sale_date: datetime | None, as_of: datetime) -> Decimal | None:
    """Fractional days between sale_date and as_of; future sales are age 0."""
    if sale_date is None:
        return None
    delta = as_of - sale_date
    days = (
        Decimal(delta.days)
        + Decimal(delta.seconds) / _SECONDS_PER_DAY
        + Decimal(delta.microseconds) / _MICROSECONDS_PER_DAY
    )
    return max(days, _ZERO)


def recency_weight(
    age_days: Decimal | None,
    config: AggregationSettings | None = None,
) -> Decimal:
    """Linear decay over the horizon, floored at min_recency_weight.

    Unknown age is treated as a full horizon (fully decayed).
    """
    config = config or AggregationSettings()
    if age_days is None:
        age_days = config.recency_horizon_days
    raw = _ONE - Decimal(age_days) / config.recency_horizon_days
    return max(config.min_recency_weight, min(_ONE, raw))


def weigh_observation(
    obs: PriceObservation,
    as_of: datetime,
    config: AggregationSettings | None = None,
) -> WeightedObservation:
    age = age_in_days(obs.sale_date, as_of)
    recency = recency_weight(age, config)
    return WeightedObservation(
        observation=obs,
        age_days=age,
        recency_weight=recency,
        weight=obs.source_reliability * recency * obs.observation_confidence,
    )


def weigh_observations(
    observations: list[PriceObservation],
    as_of: datetime,
    config: AggregationSettings | None = None,
) -> list[WeightedObservation]:
    return [weigh_observation(obs, as_of, config) for obs in observations]


def weighted_average(weighted: list[WeightedObservation]) -> Decimal:
    """Weighted mean price of the group.

    Returns 0 when the total weight is zero (e.g. every source has zero
    reliability) instead of dividing by zero.
    """
    total_weight = sum((w.weight for w in weighted), _ZERO)
    if total_weight == 0:
        return _ZERO
    weighted_sum = sum((w.price * w.weight for w in weighted), _ZERO)
    return weighted_sum / total_weight


def average_weight(weighted: list[WeightedObservation]) -> Decimal:
    """Mean per-observation weight (0 for an empty group)."""
    if not weighted:
        return _ZERO
    return sum((w.weight for w in weighted), _ZERO) / Decimal(len(weighted))
