"""
Assessment consistency verdict.

The database aggregates a period's screening results per template version
number. Results scored under the template's current version are
consistent; results scored under any other version indicate that a rule
or configuration change shifted how leads were assessed in the period.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConsistencySummary:
    total_assessments: int
    consistent_assessments: int
    inconsistent_assessments: int
    consistency_percentage: float
    is_consistent: bool
    inconsistency_reasons: list[str]


def summarize_consistency(
    counts_by_version: dict[int, int],
    current_version_number: int,
    threshold_pct: float,
) -> ConsistencySummary:
    total = sum(counts_by_version.values())
    consistent = counts_by_version.get(current_version_number, 0)
    inconsistent = total - consistent

    # an empty period cannot have drifted
    percentage = round(consistent / total * 100, 2) if total > 0 else 100.0

    reasons = [
        f"{count} assessment(s) scored with template version {version}, current is {current_version_number}"
        for version, count in sorted(counts_by_version.items())
        if version != current_version_number and count > 0
    ]

    return ConsistencySummary(
        total_assessments=total,
        consistent_assessments=consistent,
        inconsistent_assessments=inconsistent,
        consistency_percentage=percentage,
        is_consistent=percentage >= threshold_pct,
        inconsistency_reasons=reasons,
    )
