"""Tests for the SQLite observation history and aggregate store."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from src.common.models import AggregatedPrice, PriceTrend
from src.storage.sqlite_store import SQLiteAggregateStore, SQLitePriceHistory

from conftest import AS_OF, ITEM_ID, make_observation


def _aggregate(price="103.24", last_updated=AS_OF, grade="MS-65") -> AggregatedPrice:
    return AggregatedPrice(
        item_id=ITEM_ID,
        grade=grade,
        current_avg_price=Decimal(price),
        min_price=Decimal("100.00"),
        max_price=Decimal("120.00"),
        price_trend=PriceTrend.FALLING,
        trend_percentage=Decimal("-6.25"),
        sample_size=4,
        confidence_level=Decimal("0.5125"),
        price_sources=["heritage", "ebay"],
        last_updated=last_updated,
    )


class TestSQLitePriceHistory:
    def test_round_trip(self, temp_db):
        history = SQLitePriceHistory(temp_db)
        original = [
            make_observation("100.10", age_days=3, reliability="0.95"),
            make_observation(75, grade=None, source="ebay"),
        ]
        assert history.add_observations(original) == 2

        fetched = history.fetch_price_history(ITEM_ID)

        assert fetched == original
        assert fetched[0].price == Decimal("100.10")
        assert fetched[1].grade is None
        assert fetched[1].sale_date is None

    def test_fetch_filters_by_item(self, temp_db):
        history = SQLitePriceHistory(temp_db)
        history.add_observations([
            make_observation(1),
            make_observation(2, item_id="1909-vdb-cent"),
        ])
        assert len(history.fetch_price_history(ITEM_ID)) == 1
        assert history.fetch_price_history("nothing") == []

    def test_list_item_ids(self, temp_db):
        history = SQLitePriceHistory(temp_db)
        history.add_observations([
            make_observation(1),
            make_observation(2),
            make_observation(3, item_id="1909-vdb-cent"),
        ])
        assert history.list_item_ids() == ["1909-vdb-cent", ITEM_ID]


class TestSQLiteAggregateStore:
    def test_insert_and_read(self, temp_db):
        store = SQLiteAggregateStore(temp_db)
        agg = _aggregate()
        assert store.upsert_aggregate(ITEM_ID, "MS-65", agg) is True
        assert store.get_aggregate(ITEM_ID, "MS-65") == agg

    def test_missing_key(self, temp_db):
        assert SQLiteAggregateStore(temp_db).get_aggregate(ITEM_ID, "MS-70") is None

    def test_upsert_overwrites(self, temp_db, db_conn):
        store = SQLiteAggregateStore(temp_db)
        store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate("100.00"))
        store.upsert_aggregate(
            ITEM_ID, "MS-65", _aggregate("110.00", last_updated=AS_OF + timedelta(hours=1))
        )

        count = db_conn.execute("SELECT COUNT(*) AS cnt FROM aggregated_prices").fetchone()
        assert count["cnt"] == 1
        assert store.get_aggregate(ITEM_ID, "MS-65").current_avg_price == Decimal("110.00")

    def test_same_timestamp_rerun_is_applied(self, temp_db):
        store = SQLiteAggregateStore(temp_db)
        assert store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate())
        assert store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate())

    def test_stale_write_refused(self, temp_db):
        store = SQLiteAggregateStore(temp_db)
        store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate("110.00"))

        stale = _aggregate("90.00", last_updated=AS_OF - timedelta(days=1))
        assert store.upsert_aggregate(ITEM_ID, "MS-65", stale) is False
        assert store.get_aggregate(ITEM_ID, "MS-65").current_avg_price == Decimal("110.00")

    def test_list_aggregates(self, temp_db):
        store = SQLiteAggregateStore(temp_db)
        store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate(grade="MS-65"))
        store.upsert_aggregate(ITEM_ID, "AU-58", _aggregate(grade="AU-58"))
        assert [a.grade for a in store.list_aggregates(ITEM_ID)] == ["AU-58", "MS-65"]
