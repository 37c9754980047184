"""Supabase-backed observation history and aggregate store.

Both classes share one lazily created client. Credentials default to
SUPABASE_URL / SUPABASE_SERVICE_KEY (see src.common.config).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from src.common.config import SupabaseSettings, settings
from src.common.models import AggregatedPrice, PriceObservation

from .base import AggregateStore, PriceHistorySource

logger = logging.getLogger(__name__)


class _SupabaseTableClient:
    """Lazy Supabase client holder."""

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        config: Optional[SupabaseSettings] = None,
    ) -> None:
        self.config = config or settings.supabase
        self._supabase_url = supabase_url or self.config.url
        self._supabase_key = supabase_key or self.config.service_key
        self._client = None  # Lazy init

    def _get_client(self):
        """Lazy-initialize Supabase client (only when actually used)."""
        if self._client is not None:
            return self._client
        if not self._supabase_url or not self._supabase_key:
            raise ValueError(
                "SUPABASE_URL / SUPABASE_SERVICE_KEY must be set in .env "
                "or config/settings.yaml."
            )
        from supabase import create_client

        self._client = create_client(self._supabase_url, self._supabase_key)
        logger.info("Connected to Supabase: %s", self._supabase_url)
        return self._client


class SupabasePriceHistory(_SupabaseTableClient, PriceHistorySource):
    """Reads observations from the Supabase observations table."""

    _COLUMNS = (
        "item_id,source_name,source_reliability,grade,price,"
        "sale_date,observation_confidence"
    )

    def fetch_price_history(self, item_id: str) -> list[PriceObservation]:
        client = self._get_client()
        response = (
            client.table(self.config.observations_table)
            .select(self._COLUMNS)
            .eq("item_id", item_id)
            .execute()
        )
        rows = response.data or []
        logger.debug("Fetched %d observations for %s", len(rows), item_id)
        return [self._row_to_observation(row) for row in rows]

    def list_item_ids(self) -> list[str]:
        client = self._get_client()
        response = client.table(self.config.observations_table).select("item_id").execute()
        return sorted({row["item_id"] for row in response.data or []})

    @staticmethod
    def _row_to_observation(row: dict) -> PriceObservation:
        sale_date = row.get("sale_date")
        if isinstance(sale_date, str):
            sale_date = datetime.fromisoformat(sale_date.replace("Z", "+00:00"))
        return PriceObservation(
            item_id=row["item_id"],
            source_name=row["source_name"],
            source_reliability=str(row["source_reliability"]),
            grade=row.get("grade"),
            price=str(row["price"]),
            sale_date=sale_date,
            observation_confidence=str(row["observation_confidence"]),
        )


class SupabaseAggregateStore(_SupabaseTableClient, AggregateStore):
    """Upserts aggregates on the (item_id, grade) unique key."""

    def upsert_aggregate(
        self,
        item_id: str,
        grade: str,
        aggregate: AggregatedPrice,
    ) -> bool:
        client = self._get_client()
        data = aggregate.model_dump(mode="json")
        data["item_id"] = item_id
        data["grade"] = grade
        response = (
            client.table(self.config.aggregates_table)
            .upsert(data, on_conflict="item_id,grade")
            .execute()
        )
        return bool(response.data)

    def get_aggregate(self, item_id: str, grade: str) -> AggregatedPrice | None:
        client = self._get_client()
        response = (
            client.table(self.config.aggregates_table)
            .select("*")
            .eq("item_id", item_id)
            .eq("grade", grade)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            return None
        return AggregatedPrice.model_validate(rows[0])
