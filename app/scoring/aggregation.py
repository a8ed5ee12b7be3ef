"""
Category Aggregator

Groups rule applications by rule category and computes the per-category
and overall score, maximum and percentage.
"""
from __future__ import annotations

from dataclasses import dataclass

from app.schemas.screening_result import CategoryScore
from app.scoring.rules import RuleApplication


@dataclass(frozen=True)
class ScoreTotals:
    total_score: float
    max_possible_score: float
    percentage_score: float
    category_scores: dict[str, CategoryScore]


def _percentage(score: float, max_score: float) -> float:
    return score / max_score * 100 if max_score > 0 else 0.0


def aggregate(applications: list[RuleApplication]) -> ScoreTotals:
    buckets: dict[str, dict[str, float]] = {}

    for app in applications:
        bucket = buckets.setdefault(app.rule.category, {"score": 0.0, "max_score": 0.0, "weight": 0.0})
        bucket["score"] += app.score_awarded
        bucket["max_score"] += app.rule.scoring.points
        bucket["weight"] += app.rule.scoring.weight

    category_scores = {
        category: CategoryScore(
            score=b["score"],
            max_score=b["max_score"],
            percentage=_percentage(b["score"], b["max_score"]),
            weight=b["weight"],
        )
        for category, b in buckets.items()
    }

    total = sum(app.score_awarded for app in applications)
    max_possible = sum(app.rule.scoring.points for app in applications)

    return ScoreTotals(
        total_score=total,
        max_possible_score=max_possible,
        percentage_score=_percentage(total, max_possible),
        category_scores=category_scores,
    )
