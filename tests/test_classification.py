"""
Tests for category aggregation and the rating classifier.
"""
from datetime import datetime, timezone

import pytest

from app.schemas.screening_result import FeasibilityRating, Priority, QualificationLevel, RiskLevel
from app.schemas.screening_rule import ScreeningRule
from app.schemas.screening_template import (
    FeasibilityThresholds,
    QualificationThresholds,
    RiskThresholds,
)
from app.scoring.aggregation import aggregate
from app.scoring.classification import (
    classify_feasibility,
    classify_qualification,
    classify_risk,
    follow_up_priority,
)
from app.scoring.rules import RuleApplication

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _application(category="roof", points=10.0, met=True, priority=3, risk_factors=()) -> RuleApplication:
    rule = ScreeningRule(
        id=f"{category}-{points}-{met}",
        tenant_id="tenant-a",
        name=f"{category} rule",
        rule_type="threshold",
        category=category,
        scoring={"points": points},
        risk_factors=list(risk_factors),
        priority=priority,
        created_at=NOW,
        updated_at=NOW,
    )
    return RuleApplication(rule=rule, conditions_met=met, score_awarded=points if met else 0.0)


class TestAggregation:

    def test_totals_and_percentage(self):
        totals = aggregate([
            _application("roof", 25, True),
            _application("roof", 15, False),
            _application("financial", 10, True),
        ])
        assert totals.total_score == 35
        assert totals.max_possible_score == 50
        assert totals.percentage_score == pytest.approx(70)

    def test_category_scores_sum_to_totals(self):
        totals = aggregate([
            _application("roof", 25, True),
            _application("roof", 15, False),
            _application("financial", 10, True),
            _application("commercial", 5, False),
        ])
        assert sum(c.score for c in totals.category_scores.values()) == totals.total_score
        assert sum(c.max_score for c in totals.category_scores.values()) == totals.max_possible_score
        assert totals.category_scores["roof"].percentage == pytest.approx(62.5)
        assert totals.category_scores["commercial"].percentage == 0

    def test_no_rules(self):
        totals = aggregate([])
        assert totals.total_score == 0
        assert totals.max_possible_score == 0
        assert totals.percentage_score == 0
        assert totals.category_scores == {}


class TestQualification:

    def test_partially_qualified_example(self):
        thresholds = QualificationThresholds(qualified=70, partially_qualified=40)
        assert classify_qualification(55, thresholds) == QualificationLevel.PARTIALLY_QUALIFIED

    def test_boundaries_inclusive(self):
        thresholds = QualificationThresholds()
        assert classify_qualification(70, thresholds) == QualificationLevel.QUALIFIED
        assert classify_qualification(40, thresholds) == QualificationLevel.PARTIALLY_QUALIFIED
        assert classify_qualification(39.9, thresholds) == QualificationLevel.NOT_QUALIFIED

    def test_monotonic(self):
        order = [QualificationLevel.NOT_QUALIFIED, QualificationLevel.PARTIALLY_QUALIFIED, QualificationLevel.QUALIFIED]
        thresholds = QualificationThresholds()
        ranks = [order.index(classify_qualification(p, thresholds)) for p in range(0, 101)]
        assert ranks == sorted(ranks)


class TestFeasibility:

    def test_bands(self):
        thresholds = FeasibilityThresholds()
        assert classify_feasibility(85, thresholds) == FeasibilityRating.HIGH
        assert classify_feasibility(60, thresholds) == FeasibilityRating.MEDIUM
        assert classify_feasibility(45, thresholds) == FeasibilityRating.LOW
        assert classify_feasibility(10, thresholds) == FeasibilityRating.NOT_FEASIBLE

    def test_monotonic(self):
        order = [
            FeasibilityRating.NOT_FEASIBLE,
            FeasibilityRating.LOW,
            FeasibilityRating.MEDIUM,
            FeasibilityRating.HIGH,
        ]
        thresholds = FeasibilityThresholds()
        ranks = [order.index(classify_feasibility(p, thresholds)) for p in range(0, 101)]
        assert ranks == sorted(ranks)


class TestRisk:

    def test_low_when_nothing_fails(self):
        assert classify_risk([_application(priority=5)], RiskThresholds()) == RiskLevel.LOW

    def test_one_critical_failure_is_high(self):
        apps = [_application(met=False, priority=1), _application(priority=5)]
        assert classify_risk(apps, RiskThresholds()) == RiskLevel.HIGH

    def test_two_critical_failures_is_critical(self):
        apps = [_application("a", met=False, priority=1), _application("b", met=False, priority=2)]
        assert classify_risk(apps, RiskThresholds()) == RiskLevel.CRITICAL

    def test_non_critical_failure_not_escalated(self):
        assert classify_risk([_application(met=False, priority=3)], RiskThresholds()) == RiskLevel.LOW

    def test_risk_factor_count_includes_met_rules(self):
        apps = [
            _application("a", priority=5, risk_factors=["r1"]),
            _application("b", priority=5, risk_factors=["r2"]),
        ]
        assert classify_risk(apps, RiskThresholds()) == RiskLevel.MEDIUM

    def test_risk_factor_count_critical(self):
        apps = [_application(priority=5, risk_factors=[f"r{i}" for i in range(6)])]
        assert classify_risk(apps, RiskThresholds()) == RiskLevel.CRITICAL


class TestFollowUpPriority:

    def test_matrix(self):
        assert follow_up_priority(QualificationLevel.QUALIFIED, FeasibilityRating.HIGH) == Priority.HIGH
        assert follow_up_priority(QualificationLevel.QUALIFIED, FeasibilityRating.LOW) == Priority.MEDIUM
        assert follow_up_priority(QualificationLevel.NOT_QUALIFIED, FeasibilityRating.HIGH) == Priority.MEDIUM
        assert follow_up_priority(QualificationLevel.PARTIALLY_QUALIFIED, FeasibilityRating.MEDIUM) == Priority.LOW
