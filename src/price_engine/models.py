"""Data models for aggregation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.common.models import AggregatedPrice


class RunStatus(str, Enum):
    """Lifecycle of a single aggregation run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Error codes surfaced to callers
ERROR_NOT_FOUND = "not_found"
ERROR_FETCH_FAILED = "fetch_failed"


@dataclass
class GradeOutcome:
    """Result of computing and publishing one grade's aggregate."""

    grade: str
    published: bool
    aggregate: AggregatedPrice | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "grade": self.grade,
            "published": self.published,
            "error": self.error,
            "aggregate": (
                self.aggregate.model_dump(mode="json") if self.aggregate else None
            ),
        }


@dataclass
class AggregationResult:
    """Outcome of aggregating one item.

    Maps to the response contract:
    { success, grades_processed, total_observations } or
    { success: false, error, details }
    """

    item_id: str
    status: RunStatus = RunStatus.PENDING
    total_observations: int = 0
    outcomes: list[GradeOutcome] = field(default_factory=list)
    error: str | None = None
    details: str | None = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def grades_processed(self) -> int:
        return sum(1 for o in self.outcomes if o.published)

    @property
    def failed_grades(self) -> list[str]:
        return [o.grade for o in self.outcomes if not o.published]

    @property
    def is_partial(self) -> bool:
        """Completed, but at least one grade failed to publish."""
        return self.success and bool(self.failed_grades)

    @property
    def aggregates(self) -> list[AggregatedPrice]:
        return [o.aggregate for o in self.outcomes if o.aggregate is not None]

    def to_dict(self) -> dict:
        if not self.success:
            data = {"success": False, "item_id": self.item_id, "error": self.error}
            if self.details:
                data["details"] = self.details
            return data
        return {
            "success": True,
            "item_id": self.item_id,
            "grades_processed": self.grades_processed,
            "total_observations": self.total_observations,
            "failed_grades": self.failed_grades,
        }


@dataclass
class BatchSummary:
    """Counts across a batch of aggregation runs."""

    total_items: int = 0
    completed: int = 0
    partial: int = 0
    not_found: int = 0
    failed: int = 0
    grades_published: int = 0

    def to_dict(self) -> dict:
        return {
            "total_items": self.total_items,
            "completed": self.completed,
            "partial": self.partial,
            "not_found": self.not_found,
            "failed": self.failed,
            "grades_published": self.grades_published,
        }
