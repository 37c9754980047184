"""Grade grouping - partitions an item's observations by grade label."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.common.models import PriceObservation

UNKNOWN_GRADE = "Unknown"


@dataclass
class GradeGroup:
    """Observations sharing one grade.

    ``grade`` stays ``None`` for observations without a grade; only
    ``label`` substitutes the ``"Unknown"`` sentinel.
    """

    grade: str | None
    observations: list[PriceObservation] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.grade if self.grade is not None else UNKNOWN_GRADE

    @property
    def is_unknown(self) -> bool:
        return self.grade is None

    def __len__(self) -> int:
        return len(self.observations)


def group_by_grade(observations: list[PriceObservation]) -> dict[str, GradeGroup]:
    """Partition observations by grade label.

    Every observation lands in exactly one group; nothing is filtered or
    deduplicated. Groups are returned ordered by label.
    """
    groups: dict[str, GradeGroup] = {}
    for obs in observations:
        label = obs.grade if obs.grade is not None else UNKNOWN_GRADE
        group = groups.get(label)
        if group is None:
            group = groups[label] = GradeGroup(grade=obs.grade)
        group.observations.append(obs)
    return {label: groups[label] for label in sorted(groups)}
