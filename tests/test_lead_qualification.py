"""
Tests for mapping screening results onto CRM lead actions.
"""
from datetime import datetime, timezone

from app.schemas.lead_qualification import LeadPriority, LeadQualificationRule, LeadStatus
from app.schemas.screening_result import (
    CalculationMetadata,
    EnhancedScreeningResult,
    FeasibilityRating,
    Priority,
    QualificationLevel,
    RiskLevel,
)
from app.scoring.lead_qualification import (
    blend_lead_score,
    match_qualification_rule,
    qualification_actions,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _make_result(**overrides) -> EnhancedScreeningResult:
    kwargs = {
        "id": "result-1",
        "tenant_id": "tenant-a",
        "response_id": "resp-1",
        "template_id": "tpl-1",
        "template_version": "1.0",
        "template_version_number": 1,
        "total_score": 60,
        "max_possible_score": 80,
        "percentage_score": 75,
        "feasibility_rating": FeasibilityRating.MEDIUM,
        "qualification_level": QualificationLevel.QUALIFIED,
        "risk_level": RiskLevel.MEDIUM,
        "follow_up_priority": Priority.MEDIUM,
        "calculation_metadata": CalculationMetadata(version="1.0", calculated_at=NOW, rules_processed=5),
        "created_at": NOW,
    }
    kwargs.update(overrides)
    return EnhancedScreeningResult(**kwargs)


def _make_rule(rule_id: str, rule_order: int = 0, **criteria) -> LeadQualificationRule:
    return LeadQualificationRule(
        id=rule_id,
        tenant_id="tenant-a",
        name=f"Rule {rule_id}",
        rule_order=rule_order,
        auto_assign_status=LeadStatus.PROPOSAL,
        **criteria,
    )


class TestMatchQualificationRule:

    def test_first_match_by_order(self):
        rules = [
            _make_rule("late", rule_order=2),
            _make_rule("early", rule_order=1, min_screening_score=70),
        ]
        assert match_qualification_rule(_make_result(), rules).id == "early"

    def test_min_score(self):
        rule = _make_rule("r", min_screening_score=80)
        assert match_qualification_rule(_make_result(), [rule]) is None
        assert match_qualification_rule(_make_result(percentage_score=80), [rule]).id == "r"

    def test_feasibility_and_qualification_lists(self):
        rule = _make_rule(
            "r",
            required_feasibility=[FeasibilityRating.HIGH, FeasibilityRating.MEDIUM],
            required_qualification=[QualificationLevel.QUALIFIED],
        )
        assert match_qualification_rule(_make_result(), [rule]).id == "r"
        assert match_qualification_rule(
            _make_result(qualification_level=QualificationLevel.PARTIALLY_QUALIFIED), [rule],
        ) is None

    def test_max_risk_level(self):
        rule = _make_rule("r", max_risk_level=RiskLevel.MEDIUM)
        assert match_qualification_rule(_make_result(risk_level=RiskLevel.LOW), [rule]).id == "r"
        assert match_qualification_rule(_make_result(risk_level=RiskLevel.HIGH), [rule]) is None

    def test_inactive_skipped(self):
        rule = _make_rule("r", is_active=False)
        assert match_qualification_rule(_make_result(), [rule]) is None


class TestQualificationActions:

    def test_levels(self):
        assert qualification_actions(QualificationLevel.QUALIFIED, FeasibilityRating.HIGH) == (
            LeadStatus.QUALIFIED, LeadPriority.HIGH,
        )
        assert qualification_actions(QualificationLevel.QUALIFIED, FeasibilityRating.LOW) == (
            LeadStatus.QUALIFIED, LeadPriority.MEDIUM,
        )
        assert qualification_actions(QualificationLevel.PARTIALLY_QUALIFIED, FeasibilityRating.HIGH) == (
            LeadStatus.CONTACTED, LeadPriority.MEDIUM,
        )
        assert qualification_actions(QualificationLevel.NOT_QUALIFIED, FeasibilityRating.HIGH) == (
            LeadStatus.CLOSED_LOST, LeadPriority.LOW,
        )


class TestBlendLeadScore:

    def test_weights(self):
        assert blend_lead_score(50, 100) == 70
        assert blend_lead_score(80, 55) == 70
