"""
Integration tests for the full screening engine.
Tests end-to-end scoring with the default solar rule set.
"""
from datetime import datetime, timezone

import pytest

from app.schemas.questionnaire import QuestionnaireResponse
from app.schemas.screening_result import (
    FeasibilityRating,
    Priority,
    QualificationLevel,
    RiskLevel,
)
from app.schemas.screening_rule import ScreeningRule
from app.schemas.screening_template import ScreeningTemplate
from app.scoring.defaults import (
    QUESTION_ROLES,
    default_output_config,
    default_scoring_config,
    default_solar_rules,
)
from app.scoring.engine import evaluate_screening, select_applicable_rules

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
QUESTION_IDS = {role: f"q_{role}" for role in QUESTION_ROLES}


def _rules() -> list[ScreeningRule]:
    return [
        ScreeningRule(**spec.model_dump(), id=f"rule-{i}", tenant_id="tenant-a", created_at=NOW, updated_at=NOW)
        for i, spec in enumerate(default_solar_rules(QUESTION_IDS), start=1)
    ]


def _template(rules, **overrides) -> ScreeningTemplate:
    kwargs = {
        "id": "tpl-1",
        "tenant_id": "tenant-a",
        "questionnaire_template_id": "qt-1",
        "name": "Solar Screening",
        "screening_rules": [r.id for r in rules],
        "scoring_config": default_scoring_config(),
        "output_config": default_output_config(QUESTION_IDS),
        "created_at": NOW,
        "updated_at": NOW,
    }
    kwargs.update(overrides)
    return ScreeningTemplate(**kwargs)


def _make_response(**answers) -> QuestionnaireResponse:
    """Baseline 'ideal house' answers, then override specific roles."""
    responses = {
        "monthly_bill": 650,
        "roof_condition": "excellent",
        "roof_orientation": "north",
        "significant_shading": False,
        "interest_level": 9,
    }
    responses.update(answers)
    return QuestionnaireResponse(
        id="resp-1",
        template_id="qt-1",
        responses={QUESTION_IDS[role]: value for role, value in responses.items() if value is not None},
    )


def _evaluate(response, rules=None, template=None):
    rules = rules if rules is not None else _rules()
    template = template or _template(rules)
    return evaluate_screening(
        "tenant-a",
        response,
        template,
        select_applicable_rules(template, rules),
        lead_id="lead-1",
        clock=lambda: NOW,
        id_factory=lambda: "result-1",
    )


class TestEngineEndToEnd:

    def test_ideal_house_qualified(self):
        result = _evaluate(_make_response())

        assert result.total_score == 80
        assert result.max_possible_score == 80
        assert result.percentage_score == 100
        assert result.qualification_level == QualificationLevel.QUALIFIED
        assert result.feasibility_rating == FeasibilityRating.HIGH
        assert result.follow_up_priority == Priority.HIGH
        assert result.risk_factors == []
        assert result.project_estimates is not None
        assert result.next_steps[0].step == "Schedule Site Assessment"

    def test_poor_prospect_not_qualified(self):
        result = _evaluate(_make_response(
            monthly_bill=120,
            roof_condition="poor",
            roof_orientation="south",
            significant_shading=True,
            interest_level=3,
        ))

        assert result.total_score == 0
        assert result.qualification_level == QualificationLevel.NOT_QUALIFIED
        assert result.feasibility_rating == FeasibilityRating.NOT_FEASIBLE
        assert result.risk_level == RiskLevel.CRITICAL
        assert {r.factor for r in result.risk_factors} >= {"Roof structural integrity", "Reduced energy production"}
        assert result.follow_up_priority == Priority.LOW

    def test_partial(self):
        # bill + roof + orientation = 60 of 80 → 75%
        result = _evaluate(_make_response(significant_shading=True, interest_level=5))
        assert result.percentage_score == pytest.approx(75)
        assert result.qualification_level == QualificationLevel.QUALIFIED
        assert result.feasibility_rating == FeasibilityRating.MEDIUM
        assert result.follow_up_priority == Priority.MEDIUM

    def test_totals_match_applied_rules(self):
        result = _evaluate(_make_response(roof_condition="fair", interest_level=6))
        assert result.total_score == sum(a.score_awarded for a in result.applied_rules)
        assert result.max_possible_score == sum(a.max_score for a in result.applied_rules)
        assert result.percentage_score == pytest.approx(result.total_score / result.max_possible_score * 100)
        assert sum(c.score for c in result.category_scores.values()) == result.total_score
        assert sum(c.max_score for c in result.category_scores.values()) == result.max_possible_score

    def test_audit_trail(self):
        result = _evaluate(_make_response())
        assert result.id == "result-1"
        assert result.lead_id == "lead-1"
        assert result.created_at == NOW
        assert result.template_version == "1.0"
        assert result.template_version_number == 1
        assert result.calculation_metadata.calculated_at == NOW
        assert result.calculation_metadata.rules_processed == 5
        assert [a.rule_id for a in result.applied_rules] == [f"rule-{i}" for i in range(1, 6)]

    def test_deterministic(self):
        a = _evaluate(_make_response()).model_dump()
        b = _evaluate(_make_response()).model_dump()
        for r in (a, b):
            r["calculation_metadata"].pop("calculation_time_ms")
        assert a == b


class TestRuleSelection:

    def test_inactive_and_unlisted_rules_skipped(self):
        rules = _rules()
        rules[4] = rules[4].model_copy(update={"is_active": False})
        template = _template(rules, screening_rules=[r.id for r in rules[1:]])

        result = _evaluate(_make_response(), rules=rules, template=template)
        assert [a.rule_id for a in result.applied_rules] == ["rule-2", "rule-3", "rule-4"]
        assert result.max_possible_score == 45

    def test_no_rules_scores_zero(self):
        result = _evaluate(_make_response(), rules=[], template=_template([]))
        assert result.percentage_score == 0
        assert result.qualification_level == QualificationLevel.NOT_QUALIFIED


class TestOutputConfig:

    def test_sections_switched_off(self):
        rules = _rules()
        output = default_output_config(QUESTION_IDS).model_copy(update={
            "include_recommendations": False,
            "include_risk_factors": False,
            "include_next_steps": False,
            "include_estimates": False,
        })
        result = _evaluate(_make_response(roof_condition="poor"), rules, _template(rules, output_config=output))
        assert result.recommendations == []
        assert result.risk_factors == []
        assert result.next_steps == []
        assert result.project_estimates is None

    def test_missing_bill_warns(self):
        result = _evaluate(_make_response(monthly_bill=None))
        assert result.project_estimates is None
        assert any("Project estimates omitted" in w for w in result.calculation_metadata.warnings)

    def test_rule_error_reported_as_warning(self):
        result = _evaluate(_make_response(interest_level="very"))
        interest = next(a for a in result.applied_rules if a.rule_name == "Customer Interest Level")
        assert interest.conditions_met is False
        assert "error" in interest.details
        assert any("Customer Interest Level" in w for w in result.calculation_metadata.warnings)
