"""Error taxonomy for the price-consensus engine."""

from __future__ import annotations


class PriceEngineError(Exception):
    """Base class for engine errors."""


class UpstreamFetchError(PriceEngineError):
    """Observation history could not be obtained. Terminal for the run."""

    def __init__(self, item_id: str, message: str) -> None:
        super().__init__(message)
        self.item_id = item_id


class ObservationsNotFoundError(UpstreamFetchError):
    """The history source returned no observations for the item."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id, f"No price observations found for item {item_id}")


class PublishError(PriceEngineError):
    """Upsert of a single grade aggregate failed."""

    def __init__(self, item_id: str, grade: str, message: str) -> None:
        super().__init__(message)
        self.item_id = item_id
        self.grade = grade
