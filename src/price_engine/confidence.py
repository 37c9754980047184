"""Confidence scoring - how trustworthy an aggregate is, in [0, 1].

Combines three saturating terms with weights:
- Sample size (saturates at 10 observations): 40%
- Source diversity (saturates at 3 distinct sources): 30%
- Average observation weight: 30%
"""

from __future__ import annotations

from decimal import Decimal

from src.common.config import AggregationSettings

from .weighting import quantize

_ZERO = Decimal("0")
_ONE = Decimal("1")


def _clamp(value: Decimal) -> Decimal:
    return max(_ZERO, min(_ONE, value))


def confidence_score(
    sample_size: int,
    distinct_sources: int,
    avg_weight: Decimal,
    config: AggregationSettings | None = None,
) -> Decimal:
    """Score an aggregate's confidence.

    Args:
        sample_size: Number of observations in the grade group.
        distinct_sources: Number of unique source names.
        avg_weight: Mean per-observation weight.
        config: Aggregation settings (targets, term weights, rounding).

    Returns:
        Confidence clamped to [0, 1].
    """
    config = config or AggregationSettings()

    size_term = min(_ONE, Decimal(sample_size) / Decimal(config.sample_size_target))
    source_term = min(_ONE, Decimal(distinct_sources) / Decimal(config.source_diversity_target))

    score = (
        size_term * config.sample_size_weight
        + source_term * config.source_diversity_weight
        + Decimal(avg_weight) * config.avg_weight_weight
    )
    return quantize(_clamp(score), config.confidence_places)
