"""Aggregation orchestrator.

Fetches an item's observation history, computes one AggregatedPrice per
grade group, and publishes each via upsert keyed by (item_id, grade).

Fetch failures are terminal for the run and write nothing. Compute and
publish failures are isolated per grade: they are logged, recorded on the
result, and sibling grades still publish.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import DecimalException, localcontext

from src.common.config import AggregationSettings, settings
from src.common.models import AggregatedPrice, PriceObservation
from src.storage.base import AggregateStore, PriceHistorySource

from .confidence import confidence_score
from .errors import ObservationsNotFoundError, PublishError, UpstreamFetchError
from .grouping import GradeGroup, group_by_grade
from .models import (
    ERROR_FETCH_FAILED,
    ERROR_NOT_FOUND,
    AggregationResult,
    BatchSummary,
    GradeOutcome,
    RunStatus,
)
from .trend import analyze_trend
from .weighting import average_weight, quantize, weigh_observations, weighted_average

logger = logging.getLogger(__name__)

# Significant digits for aggregation arithmetic (default context is 28)
_DECIMAL_PRECISION = 50


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _KeyedLocks:
    """One lock per key, so runs for the same item never interleave.

    A key's lock is dropped once no run holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class PriceAggregator:
    """Computes and publishes consensus prices per (item_id, grade).

    Usage:
        aggregator = PriceAggregator(SQLitePriceHistory(), SQLiteAggregateStore())
        result = aggregator.aggregate_item("1921-morgan-dollar")
        print(result.to_dict())
        # {"success": True, "grades_processed": 3, "total_observations": 41, ...}
    """

    def __init__(
        self,
        history_source: PriceHistorySource,
        store: AggregateStore,
        config: AggregationSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.history_source = history_source
        self.store = store
        self.config = config or settings.aggregation
        self._clock = clock or _utc_now
        self._item_locks = _KeyedLocks()

    # --- Pure computation ---

    def compute_grade_aggregate(
        self,
        item_id: str,
        group: GradeGroup,
        as_of: datetime,
    ) -> AggregatedPrice:
        """Compute the aggregate for a single grade group.

        Raises decimal.DecimalException if a price is too large to round
        within the working precision.
        """
        prices = [obs.price for obs in group.observations]
        sources = {obs.source_name for obs in group.observations}
        places = self.config.price_places

        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            weighted = weigh_observations(group.observations, as_of, self.config)
            avg_price = quantize(weighted_average(weighted), places)
            min_price = quantize(min(prices), places)
            max_price = quantize(max(prices), places)
            trend = analyze_trend(weighted, self.config)
            confidence = confidence_score(
                sample_size=len(group),
                distinct_sources=len(sources),
                avg_weight=average_weight(weighted),
                config=self.config,
            )

        return AggregatedPrice(
            item_id=item_id,
            grade=group.label,
            current_avg_price=avg_price,
            min_price=min_price,
            max_price=max_price,
            price_trend=trend.trend,
            trend_percentage=trend.trend_percentage,
            sample_size=len(group),
            confidence_level=confidence,
            price_sources=sorted(sources),
            last_updated=as_of,
        )

    def compute_aggregates(
        self,
        item_id: str,
        observations: list[PriceObservation],
        as_of: datetime,
    ) -> list[AggregatedPrice]:
        """Compute one aggregate per grade group (no I/O)."""
        groups = group_by_grade(observations)
        return [
            self.compute_grade_aggregate(item_id, group, as_of)
            for group in groups.values()
        ]

    # --- I/O boundaries ---

    def _fetch(self, item_id: str) -> list[PriceObservation]:
        try:
            observations = self.history_source.fetch_price_history(item_id)
        except Exception as exc:
            raise UpstreamFetchError(
                item_id, f"Failed to fetch price history for {item_id}: {exc}"
            ) from exc
        if not observations:
            raise ObservationsNotFoundError(item_id)
        return observations

    def _publish(self, aggregate: AggregatedPrice) -> None:
        try:
            written = self.store.upsert_aggregate(
                aggregate.item_id, aggregate.grade, aggregate
            )
        except Exception as exc:
            raise PublishError(
                aggregate.item_id, aggregate.grade, f"Upsert failed: {exc}"
            ) from exc
        if not written:
            raise PublishError(
                aggregate.item_id, aggregate.grade, "Upsert was not applied"
            )

    def _process_grade(
        self,
        item_id: str,
        group: GradeGroup,
        as_of: datetime,
    ) -> GradeOutcome:
        try:
            aggregate = self.compute_grade_aggregate(item_id, group, as_of)
        except DecimalException as exc:
            logger.warning(
                "Failed to compute %s/%s: %r", item_id, group.label, exc,
                exc_info=True,
            )
            return GradeOutcome(
                grade=group.label, published=False, error=f"Compute failed: {exc!r}"
            )

        try:
            self._publish(aggregate)
        except PublishError as exc:
            logger.warning(
                "Failed to publish %s/%s: %s", item_id, group.label, exc,
                exc_info=True,
            )
            return GradeOutcome(
                grade=group.label, published=False, aggregate=aggregate, error=str(exc)
            )

        logger.info(
            "  %s/%s: avg=%s trend=%s (%s%%) n=%d confidence=%s",
            item_id,
            group.label,
            aggregate.current_avg_price,
            aggregate.price_trend.value,
            aggregate.trend_percentage,
            aggregate.sample_size,
            aggregate.confidence_level,
        )
        return GradeOutcome(grade=group.label, published=True, aggregate=aggregate)

    # --- Runs ---

    def aggregate_item(self, item_id: str) -> AggregationResult:
        """Aggregate and publish every grade of one item.

        Runs for the same item_id are serialized within this process.
        """
        with self._item_locks.hold(item_id):
            return self._run(item_id)

    def _run(self, item_id: str) -> AggregationResult:
        result = AggregationResult(item_id=item_id)
        result.status = RunStatus.RUNNING
        logger.info("Aggregating prices for %s", item_id)

        try:
            observations = self._fetch(item_id)
        except ObservationsNotFoundError as exc:
            logger.warning("%s", exc)
            result.status = RunStatus.FAILED
            result.error = ERROR_NOT_FOUND
            result.details = str(exc)
            return result
        except UpstreamFetchError as exc:
            logger.error("%s", exc)
            result.status = RunStatus.FAILED
            result.error = ERROR_FETCH_FAILED
            result.details = str(exc)
            return result

        as_of = self._clock()
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        result.total_observations = len(observations)
        groups = group_by_grade(observations)

        for group in groups.values():
            result.outcomes.append(self._process_grade(item_id, group, as_of))

        result.status = RunStatus.COMPLETED
        logger.info(
            "Aggregation complete for %s: %d/%d grades published from %d observations",
            item_id, result.grades_processed, len(groups), result.total_observations,
        )
        if result.failed_grades:
            logger.warning("Grades not published for %s: %s", item_id, result.failed_grades)
        return result

    def aggregate_items(self, item_ids: Iterable[str]) -> list[AggregationResult]:
        """Aggregate several items independently."""
        return [self.aggregate_item(item_id) for item_id in item_ids]

    def aggregate_all(self) -> list[AggregationResult]:
        """Aggregate every item the history source knows about."""
        item_ids = self.history_source.list_item_ids()
        logger.info("Aggregating %d items", len(item_ids))
        return self.aggregate_items(item_ids)

    @staticmethod
    def summarize(results: list[AggregationResult]) -> BatchSummary:
        summary = BatchSummary(total_items=len(results))
        for r in results:
            if r.success:
                summary.completed += 1
                summary.grades_published += r.grades_processed
                if r.is_partial:
                    summary.partial += 1
            elif r.error == ERROR_NOT_FOUND:
                summary.not_found += 1
            else:
                summary.failed += 1
        return summary
