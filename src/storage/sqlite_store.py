"""SQLite-backed observation history and aggregate store."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from src.common.database import get_connection
from src.common.models import AggregatedPrice, PriceObservation

from .base import AggregateStore, PriceHistorySource

logger = logging.getLogger(__name__)

# Overwrite only when the incoming run is not older than the stored row
_UPSERT_SQL = """
INSERT INTO aggregated_prices
    (item_id, grade, current_avg_price, min_price, max_price,
     price_trend, trend_percentage, sample_size, confidence_level,
     price_sources, last_updated)
VALUES
    (:item_id, :grade, :current_avg_price, :min_price, :max_price,
     :price_trend, :trend_percentage, :sample_size, :confidence_level,
     :price_sources, :last_updated)
ON CONFLICT(item_id, grade) DO UPDATE SET
    current_avg_price = excluded.current_avg_price,
    min_price = excluded.min_price,
    max_price = excluded.max_price,
    price_trend = excluded.price_trend,
    trend_percentage = excluded.trend_percentage,
    sample_size = excluded.sample_size,
    confidence_level = excluded.confidence_level,
    price_sources = excluded.price_sources,
    last_updated = excluded.last_updated
WHERE excluded.last_updated >= aggregated_prices.last_updated
"""


class SQLitePriceHistory(PriceHistorySource):
    """Reads observations from the price_observations table.

    Usage:
        history = SQLitePriceHistory("data/price_engine.db")
        history.add_observations(observations)
        rows = history.fetch_price_history("1921-morgan-dollar")
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = db_path

    def fetch_price_history(self, item_id: str) -> list[PriceObservation]:
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                "SELECT item_id, source_name, source_reliability, grade, price, "
                "sale_date, observation_confidence "
                "FROM price_observations WHERE item_id = ? ORDER BY id",
                (item_id,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_observation(row) for row in rows]

    def list_item_ids(self) -> list[str]:
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                "SELECT DISTINCT item_id FROM price_observations ORDER BY item_id"
            ).fetchall()
        finally:
            conn.close()
        return [row["item_id"] for row in rows]

    def add_observations(self, observations: list[PriceObservation]) -> int:
        """Insert observations. Returns the number of rows written."""
        conn = get_connection(self.db_path)
        try:
            conn.executemany(
                "INSERT INTO price_observations "
                "(item_id, source_name, source_reliability, grade, price, "
                "sale_date, observation_confidence) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        obs.item_id,
                        obs.source_name,
                        str(obs.source_reliability),
                        obs.grade,
                        str(obs.price),
                        obs.sale_date.isoformat() if obs.sale_date else None,
                        str(obs.observation_confidence),
                    )
                    for obs in observations
                ],
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Stored %d observations", len(observations))
        return len(observations)

    @staticmethod
    def _row_to_observation(row: sqlite3.Row) -> PriceObservation:
        sale_date = row["sale_date"]
        return PriceObservation(
            item_id=row["item_id"],
            source_name=row["source_name"],
            source_reliability=row["source_reliability"],
            grade=row["grade"],
            price=row["price"],
            sale_date=datetime.fromisoformat(sale_date) if sale_date else None,
            observation_confidence=row["observation_confidence"],
        )


class SQLiteAggregateStore(AggregateStore):
    """Upserts aggregates into aggregated_prices keyed by (item_id, grade).

    A write carrying an older last_updated than the stored row is refused
    (returns False), so a slow concurrent run cannot clobber a newer one.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = db_path

    def upsert_aggregate(
        self,
        item_id: str,
        grade: str,
        aggregate: AggregatedPrice,
    ) -> bool:
        row = aggregate.to_row()
        row["item_id"] = item_id
        row["grade"] = grade
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(_UPSERT_SQL, row)
            conn.commit()
            written = cursor.rowcount > 0
        finally:
            conn.close()
        if not written:
            logger.warning(
                "Stale aggregate for %s/%s refused (last_updated=%s)",
                item_id, grade, row["last_updated"],
            )
        return written

    def get_aggregate(self, item_id: str, grade: str) -> AggregatedPrice | None:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM aggregated_prices WHERE item_id = ? AND grade = ?",
                (item_id, grade),
            ).fetchone()
        finally:
            conn.close()
        return AggregatedPrice.from_row(dict(row)) if row else None

    def list_aggregates(self, item_id: str) -> list[AggregatedPrice]:
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM aggregated_prices WHERE item_id = ? ORDER BY grade",
                (item_id,),
            ).fetchall()
        finally:
            conn.close()
        return [AggregatedPrice.from_row(dict(row)) for row in rows]
