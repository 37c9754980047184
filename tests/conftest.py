"""Shared test fixtures for the price engine."""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.database import get_connection, init_db
from src.common.models import PriceObservation

AS_OF = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)
ITEM_ID = "1921-morgan-dollar"


def make_observation(
    price,
    *,
    age_days=None,
    grade="MS-65",
    source="heritage",
    reliability="0.9",
    confidence="0.8",
    item_id=ITEM_ID,
    as_of=AS_OF,
) -> PriceObservation:
    """Build an observation whose sale happened ``age_days`` before ``as_of``."""
    sale_date = as_of - timedelta(days=age_days) if age_days is not None else None
    return PriceObservation(
        item_id=item_id,
        source_name=source,
        source_reliability=Decimal(str(reliability)),
        observation_confidence=Decimal(str(confidence)),
        grade=grade,
        price=Decimal(str(price)),
        sale_date=sale_date,
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def as_of() -> datetime:
    """Fixed aggregation instant."""
    return AS_OF


@pytest.fixture
def temp_db(tmp_path) -> str:
    """Provide a path to a temporary, initialized SQLite database."""
    db_file = tmp_path / "test_prices.db"
    init_db(db_file)
    return str(db_file)


@pytest.fixture
def db_conn(temp_db):
    """Provide an initialized SQLite connection from temp_db."""
    conn = get_connection(temp_db)
    yield conn
    conn.close()


@pytest.fixture
def sample_observations() -> list[PriceObservation]:
    """A realistic multi-grade history for one coin."""
    return [
        # MS-65: rising - recent sales ~10% above the 30-90 day window
        make_observation(1100, age_days=5, grade="MS-65", source="heritage"),
        make_observation(1120, age_days=12, grade="MS-65", source="ebay", reliability="0.6"),
        make_observation(1000, age_days=45, grade="MS-65", source="greatcollections"),
        make_observation(1020, age_days=60, grade="MS-65", source="ebay", reliability="0.6"),
        # MS-63: only recent sales
        make_observation(400, age_days=3, grade="MS-63", source="heritage"),
        make_observation(420, age_days=20, grade="MS-63", source="stacks"),
        # No grade, no sale date
        make_observation(250, grade=None, source="ebay", reliability="0.6"),
    ]
