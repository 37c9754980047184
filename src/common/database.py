"""SQLite database utilities for the price engine.

Provides connection management and table initialization.
Decimal values are stored as TEXT so they round-trip exactly.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from .config import settings

logger = logging.getLogger(__name__)

# SQL for creating the core tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS price_observations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL,
    source_name TEXT NOT NULL,
    source_reliability TEXT NOT NULL,
    grade TEXT,
    price TEXT NOT NULL,
    sale_date TEXT,
    observation_confidence TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS aggregated_prices (
    item_id TEXT NOT NULL,
    grade TEXT NOT NULL,
    current_avg_price TEXT NOT NULL,
    min_price TEXT NOT NULL,
    max_price TEXT NOT NULL,
    price_trend TEXT NOT NULL DEFAULT 'stable',
    trend_percentage TEXT NOT NULL DEFAULT '0',
    sample_size INTEGER NOT NULL,
    confidence_level TEXT NOT NULL,
    price_sources TEXT NOT NULL DEFAULT '[]',
    last_updated TEXT NOT NULL,
    PRIMARY KEY (item_id, grade)
);

CREATE INDEX IF NOT EXISTS idx_observations_item
    ON price_observations(item_id);
"""


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Get a SQLite connection with row factory enabled."""
    path = Path(db_path) if db_path else settings.database_abs_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: str | Path | None = None) -> None:
    """Create all tables if they don't exist."""
    conn = get_connection(db_path)
    try:
        conn.executescript(_CREATE_TABLES_SQL)
        conn.commit()
        logger.info("Database schema initialized at %s", db_path or settings.database_abs_path)
    finally:
        conn.close()
