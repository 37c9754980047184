"""Price Consensus Engine - grade grouping, weighted averaging, trend and confidence."""

from .aggregator import PriceAggregator
from .confidence import confidence_score
from .errors import (
    ObservationsNotFoundError,
    PriceEngineError,
    PublishError,
    UpstreamFetchError,
)
from .grouping import UNKNOWN_GRADE, GradeGroup, group_by_grade
from .models import AggregationResult, BatchSummary, GradeOutcome, RunStatus
from .trend import TrendResult, analyze_trend, classify_trend
from .weighting import (
    WeightedObservation,
    age_in_days,
    recency_weight,
    weigh_observation,
    weighted_average,
)

__all__ = [
    "PriceAggregator",
    "confidence_score",
    "ObservationsNotFoundError",
    "PriceEngineError",
    "PublishError",
    "UpstreamFetchError",
    "UNKNOWN_GRADE",
    "GradeGroup",
    "group_by_grade",
    "AggregationResult",
    "BatchSummary",
    "GradeOutcome",
    "RunStatus",
    "TrendResult",
    "analyze_trend",
    "classify_trend",
    "WeightedObservation",
    "age_in_days",
    "recency_weight",
    "weigh_observation",
    "weighted_average",
]
