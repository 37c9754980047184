"""Storage collaborators for the price engine.

- base: PriceHistorySource / AggregateStore interfaces
- memory: in-memory adapters (dry runs, tests)
- sqlite_store: local SQLite adapters
- supabase_store: Supabase adapters
"""

from .base import AggregateStore, PriceHistorySource
from .memory import InMemoryAggregateStore, InMemoryPriceHistory
from .sqlite_store import SQLiteAggregateStore, SQLitePriceHistory
from .supabase_store import SupabaseAggregateStore, SupabasePriceHistory

__all__ = [
    "AggregateStore",
    "PriceHistorySource",
    "InMemoryAggregateStore",
    "InMemoryPriceHistory",
    "SQLiteAggregateStore",
    "SQLitePriceHistory",
    "SupabaseAggregateStore",
    "SupabasePriceHistory",
]
