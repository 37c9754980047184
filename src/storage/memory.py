"""In-memory collaborators, used for dry runs and tests."""

from __future__ import annotations

import threading
from collections import defaultdict

from src.common.models import AggregatedPrice, PriceObservation

from .base import AggregateStore, PriceHistorySource


class InMemoryPriceHistory(PriceHistorySource):
    """Observation history held in a dict keyed by item_id."""

    def __init__(self, observations: list[PriceObservation] | None = None) -> None:
        self._by_item: dict[str, list[PriceObservation]] = defaultdict(list)
        for obs in observations or []:
            self._by_item[obs.item_id].append(obs)

    def fetch_price_history(self, item_id: str) -> list[PriceObservation]:
        return list(self._by_item.get(item_id, []))

    def list_item_ids(self) -> list[str]:
        return sorted(self._by_item)


class InMemoryAggregateStore(AggregateStore):
    """Aggregates held in a dict keyed by (item_id, grade)."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], AggregatedPrice] = {}
        self._lock = threading.Lock()

    def upsert_aggregate(
        self,
        item_id: str,
        grade: str,
        aggregate: AggregatedPrice,
    ) -> bool:
        with self._lock:
            self._rows[(item_id, grade)] = aggregate
        return True

    def get_aggregate(self, item_id: str, grade: str) -> AggregatedPrice | None:
        return self._rows.get((item_id, grade))

    def all_aggregates(self) -> list[AggregatedPrice]:
        return [self._rows[key] for key in sorted(self._rows)]

    def __len__(self) -> int:
        return len(self._rows)
