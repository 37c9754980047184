"""Interfaces for the engine's external collaborators.

The engine reads observation history from a PriceHistorySource and
writes aggregates to an AggregateStore. Concrete adapters (SQLite,
Supabase, in-memory) implement these.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.common.models import AggregatedPrice, PriceObservation


class PriceHistorySource(ABC):
    """Abstract source of price observations."""

    @abstractmethod
    def fetch_price_history(self, item_id: str) -> list[PriceObservation]:
        """Return every observation recorded for the item."""
        ...

    def list_item_ids(self) -> list[str]:
        """Return the ids of all items with observations."""
        raise NotImplementedError(
            f"{type(self).__name__} does not support listing items"
        )


class AggregateStore(ABC):
    """Abstract sink for aggregated prices, keyed by (item_id, grade)."""

    @abstractmethod
    def upsert_aggregate(
        self,
        item_id: str,
        grade: str,
        aggregate: AggregatedPrice,
    ) -> bool:
        """Insert or overwrite the aggregate. Returns False if not written."""
        ...

    def get_aggregate(self, item_id: str, grade: str) -> AggregatedPrice | None:
        raise NotImplementedError(
            f"{type(self).__name__} does not support reads"
        )
