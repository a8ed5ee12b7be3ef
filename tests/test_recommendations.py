"""
Tests for recommendations, risk factors and next steps.
"""
from datetime import datetime, timezone

from app.schemas.screening_result import Priority, QualificationLevel, RiskLevel
from app.schemas.screening_rule import ScreeningRule
from app.scoring.recommendations import (
    NEXT_STEPS,
    generate_next_steps,
    generate_recommendations,
    generate_risk_factors,
)
from app.scoring.rules import RuleApplication

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)

MESSAGES = {
    "qualified": "Roof is fine",
    "partially_qualified": "Roof needs minor repairs",
    "not_qualified": "Roof needs major repairs",
}


def _application(met: bool, priority: int = 2, recommendations=None, risk_factors=()) -> RuleApplication:
    rule = ScreeningRule(
        id="rule-roof",
        tenant_id="tenant-a",
        name="Roof Condition",
        rule_type="weighted_sum",
        category="technical",
        scoring={"points": 20},
        recommendations=MESSAGES if recommendations is None else recommendations,
        risk_factors=list(risk_factors),
        priority=priority,
        created_at=NOW,
        updated_at=NOW,
    )
    return RuleApplication(rule=rule, conditions_met=met, score_awarded=20 if met else 0)


class TestRecommendations:

    def test_met_rule_uses_qualified_message(self):
        [rec] = generate_recommendations([_application(True)], QualificationLevel.NOT_QUALIFIED)
        assert rec.message == "Roof is fine"
        assert rec.action_required is False
        assert rec.priority == Priority.HIGH

    def test_failed_rule_partially_qualified(self):
        [rec] = generate_recommendations([_application(False)], QualificationLevel.PARTIALLY_QUALIFIED)
        assert rec.message == "Roof needs minor repairs"
        assert rec.action_required is True

    def test_failed_rule_not_qualified(self):
        [rec] = generate_recommendations([_application(False)], QualificationLevel.NOT_QUALIFIED)
        assert rec.message == "Roof needs major repairs"

    def test_partial_falls_back_to_not_qualified_message(self):
        messages = {"qualified": "ok", "not_qualified": "no"}
        [rec] = generate_recommendations(
            [_application(False, recommendations=messages)], QualificationLevel.PARTIALLY_QUALIFIED,
        )
        assert rec.message == "no"

    def test_low_priority_failure_not_action_required(self):
        [rec] = generate_recommendations([_application(False, priority=5)], QualificationLevel.NOT_QUALIFIED)
        assert rec.action_required is False
        assert rec.priority == Priority.LOW

    def test_rule_without_message_skipped(self):
        assert generate_recommendations([_application(True, recommendations={})], QualificationLevel.QUALIFIED) == []


class TestRiskFactors:

    def test_only_failed_rules(self):
        factors = ["Roof structural integrity", "Weather resistance"]
        assert generate_risk_factors([_application(True, risk_factors=factors)]) == []

        result = generate_risk_factors([_application(False, priority=3, risk_factors=factors)])
        assert [r.factor for r in result] == factors
        assert all(r.severity == RiskLevel.MEDIUM for r in result)
        assert result[0].mitigation == "Address roof structural integrity before proceeding with installation"
        assert result[0].description == "Risk identified in technical assessment"


class TestNextSteps:

    def test_qualified_checklist(self):
        steps = generate_next_steps(QualificationLevel.QUALIFIED)
        assert [s.step for s in steps] == [
            "Schedule Site Assessment", "Prepare Detailed Proposal", "Present Solution",
        ]

    def test_every_level_has_steps(self):
        for level in QualificationLevel:
            assert generate_next_steps(level)

    def test_returns_copies(self):
        steps = generate_next_steps(QualificationLevel.NOT_QUALIFIED)
        steps[0].step = "changed"
        assert NEXT_STEPS[QualificationLevel.NOT_QUALIFIED][0].step == "Educational Follow-up"
