"""Tests for the Supabase adapters (client mocked)."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from src.common.config import SupabaseSettings
from src.common.models import AggregatedPrice, PriceTrend
from src.storage.supabase_store import SupabaseAggregateStore, SupabasePriceHistory

from conftest import AS_OF, ITEM_ID


def _aggregate() -> AggregatedPrice:
    return AggregatedPrice(
        item_id=ITEM_ID,
        grade="MS-65",
        current_avg_price=Decimal("103.24"),
        min_price=Decimal("100.00"),
        max_price=Decimal("120.00"),
        price_trend=PriceTrend.STABLE,
        trend_percentage=Decimal("0"),
        sample_size=2,
        confidence_level=Decimal("0.4054"),
        price_sources=["heritage", "ebay"],
        last_updated=AS_OF,
    )


class TestSupabaseInit:
    def test_init_with_explicit_params(self):
        store = SupabaseAggregateStore(supabase_url="http://test", supabase_key="key")
        assert store._supabase_url == "http://test"
        assert store._supabase_key == "key"

    def test_init_from_settings(self):
        config = SupabaseSettings(url="http://cfg", service_key="cfg-key")
        history = SupabasePriceHistory(config=config)
        assert history._supabase_url == "http://cfg"
        assert history._supabase_key == "cfg-key"

    def test_lazy_client_init(self):
        store = SupabaseAggregateStore(supabase_url="http://test", supabase_key="key")
        assert store._client is None

    def test_get_client_raises_without_credentials(self):
        store = SupabaseAggregateStore(config=SupabaseSettings())
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            store._get_client()


class TestSupabaseAggregateStore:
    @patch("src.storage.supabase_store.SupabaseAggregateStore._get_client")
    def test_upsert_uses_composite_key(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.table.return_value.upsert.return_value.execute.return_value = MagicMock(
            data=[{"item_id": ITEM_ID}]
        )
        mock_get_client.return_value = mock_client
        store = SupabaseAggregateStore(supabase_url="http://test", supabase_key="key")

        assert store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate()) is True

        mock_client.table.assert_called_with("aggregated_prices")
        args, kwargs = mock_client.table.return_value.upsert.call_args
        assert kwargs["on_conflict"] == "item_id,grade"
        row = args[0]
        assert row["current_avg_price"] == "103.24"
        assert row["price_trend"] == "stable"
        assert row["price_sources"] == ["ebay", "heritage"]

    @patch("src.storage.supabase_store.SupabaseAggregateStore._get_client")
    def test_empty_response_is_not_written(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.table.return_value.upsert.return_value.execute.return_value = MagicMock(data=[])
        mock_get_client.return_value = mock_client
        store = SupabaseAggregateStore(supabase_url="http://test", supabase_key="key")
        assert store.upsert_aggregate(ITEM_ID, "MS-65", _aggregate()) is False

    @patch("src.storage.supabase_store.SupabaseAggregateStore._get_client")
    def test_get_aggregate(self, mock_get_client):
        row = _aggregate().model_dump(mode="json")
        mock_client = MagicMock()
        query = mock_client.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value = MagicMock(data=[row])
        mock_get_client.return_value = mock_client
        store = SupabaseAggregateStore(supabase_url="http://test", supabase_key="key")

        assert store.get_aggregate(ITEM_ID, "MS-65") == _aggregate()


class TestSupabasePriceHistory:
    @patch("src.storage.supabase_store.SupabasePriceHistory._get_client")
    def test_fetch_maps_rows(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(
            data=[
                {
                    "item_id": ITEM_ID,
                    "source_name": "heritage",
                    "source_reliability": 0.9,
                    "grade": "MS-65",
                    "price": "100.00",
                    "sale_date": "2026-01-22T12:00:00Z",
                    "observation_confidence": 0.8,
                },
                {
                    "item_id": ITEM_ID,
                    "source_name": "ebay",
                    "source_reliability": 0.6,
                    "grade": None,
                    "price": 250,
                    "sale_date": None,
                    "observation_confidence": 1,
                },
            ]
        )
        mock_get_client.return_value = mock_client
        history = SupabasePriceHistory(supabase_url="http://test", supabase_key="key")

        observations = history.fetch_price_history(ITEM_ID)

        mock_client.table.assert_called_with("price_observations")
        assert len(observations) == 2
        assert observations[0].source_reliability == Decimal("0.9")
        assert observations[0].sale_date.day == 22
        assert observations[1].grade is None
        assert observations[1].sale_date is None

    @patch("src.storage.supabase_store.SupabasePriceHistory._get_client")
    def test_list_item_ids(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.table.return_value.select.return_value.execute.return_value = MagicMock(
            data=[{"item_id": "b"}, {"item_id": "a"}, {"item_id": "b"}]
        )
        mock_get_client.return_value = mock_client
        history = SupabasePriceHistory(supabase_url="http://test", supabase_key="key")
        assert history.list_item_ids() == ["a", "b"]
