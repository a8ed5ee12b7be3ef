"""
Unit tests for the per-type rule evaluators.
"""
from datetime import datetime, timezone

import pytest

from app.schemas.screening_rule import RuleType, ScreeningRule
from app.scoring.rules import (
    FORMULA_NOT_IMPLEMENTED,
    RULE_EVALUATORS,
    apply_rule,
    option_score,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _make_rule(**overrides) -> ScreeningRule:
    kwargs = {
        "id": "rule-1",
        "tenant_id": "tenant-a",
        "name": "Roof Area",
        "rule_type": "threshold",
        "category": "roof",
        "conditions": [{"question_id": "roof_area", "operator": "greater_than", "value": 20}],
        "scoring": {"points": 25},
        "priority": 3,
        "created_at": NOW,
        "updated_at": NOW,
    }
    kwargs.update(overrides)
    return ScreeningRule(**kwargs)


class TestThreshold:

    def test_roof_area_above_cutoff(self):
        app = apply_rule(_make_rule(), {"roof_area": 35})
        assert app.conditions_met is True
        assert app.score_awarded == 25
        assert app.details["response_value"] == 35
        assert app.details["threshold_value"] == 20
        assert app.details["operator"] == "greater_than"

    def test_below_cutoff(self):
        app = apply_rule(_make_rule(), {"roof_area": 12})
        assert app.conditions_met is False
        assert app.score_awarded == 0

    def test_missing_answer(self):
        app = apply_rule(_make_rule(), {"other": 1})
        assert app.conditions_met is False
        assert app.details["missing_response"] == "roof_area"

    def test_numeric_string_answer(self):
        assert apply_rule(_make_rule(), {"roof_area": "35"}).conditions_met is True

    def test_non_numeric_answer_is_contained(self):
        app = apply_rule(_make_rule(), {"roof_area": "big"})
        assert app.conditions_met is False
        assert "not numeric" in app.details["error"]

    def test_only_first_condition_used(self):
        rule = _make_rule(conditions=[
            {"question_id": "roof_area", "operator": "greater_than", "value": 20},
            {"question_id": "roof_area", "operator": "less_than", "value": 0},
        ])
        assert apply_rule(rule, {"roof_area": 35}).conditions_met is True

    def test_less_than(self):
        rule = _make_rule(conditions=[{"question_id": "age", "operator": "less_than", "value": 15}])
        assert apply_rule(rule, {"age": 10}).conditions_met is True
        assert apply_rule(rule, {"age": 15}).conditions_met is False

    def test_contains_not_supported(self):
        rule = _make_rule(conditions=[{"question_id": "notes", "operator": "contains", "value": "roof"}])
        app = apply_rule(rule, {"notes": "roof ok"})
        assert app.conditions_met is False
        assert app.details["unsupported_operator"] == "contains"

    def test_no_conditions(self):
        app = apply_rule(_make_rule(conditions=[]), {"roof_area": 35})
        assert app.conditions_met is False
        assert app.details["no_conditions"] is True


class TestRange:

    def _rule(self):
        return _make_rule(
            rule_type="range",
            conditions=[{"question_id": "bill", "operator": "between", "value": [10, 20]}],
        )

    @pytest.mark.parametrize("answer", [15, 10, 20])
    def test_inside_inclusive(self, answer):
        assert apply_rule(self._rule(), {"bill": answer}).conditions_met is True

    @pytest.mark.parametrize("answer", [25, 9.99])
    def test_outside(self, answer):
        assert apply_rule(self._rule(), {"bill": answer}).conditions_met is False

    def test_records_range(self):
        app = apply_rule(self._rule(), {"bill": 15})
        assert app.details["range"] == {"min": 10, "max": 20}
        assert app.details["response_value"] == 15

    def test_single_bound_is_invalid(self):
        rule = _make_rule(rule_type="range", conditions=[{"question_id": "bill", "operator": "between", "value": 10}])
        app = apply_rule(rule, {"bill": 10})
        assert app.conditions_met is False
        assert app.details["invalid_range"] == 10


class TestWeightedSum:

    def _rule(self, **overrides):
        kwargs = {
            "rule_type": "weighted_sum",
            "conditions": [
                {"question_id": "q1", "operator": "equals", "value": 0, "weight": 2},
                {"question_id": "q2", "operator": "equals", "value": 0, "weight": 1},
            ],
            "scoring": {"points": 30},
        }
        kwargs.update(overrides)
        return _make_rule(**kwargs)

    def test_sum_and_weight(self):
        """8×2 + 4×1 = 20 over total weight 3."""
        app = apply_rule(self._rule(thresholds={"medium": 20}), {"q1": 8, "q2": 4})
        assert app.details["weighted_sum"] == 20
        assert app.details["total_weight"] == 3
        assert app.details["average_score"] == pytest.approx(20 / 3)
        assert app.conditions_met is True

    def test_below_configured_threshold(self):
        app = apply_rule(self._rule(thresholds={"medium": 21}), {"q1": 8, "q2": 4})
        assert app.conditions_met is False

    def test_default_threshold_is_sixty_percent_of_points(self):
        # 0.6 × 30 = 18 ≤ 20
        app = apply_rule(self._rule(), {"q1": 8, "q2": 4})
        assert app.details["threshold"] == pytest.approx(18)
        assert app.conditions_met is True

    def test_unanswered_conditions_skipped(self):
        app = apply_rule(self._rule(thresholds={"medium": 1}), {"q1": 1})
        assert app.details["total_weight"] == 2
        assert len(app.details["condition_results"]) == 1

    def test_option_scores_from_config(self):
        rule = self._rule(
            conditions=[{"question_id": "roof", "operator": "equals", "value": "excellent"}],
            thresholds={"medium": 2},
        )
        scores = {"excellent": 3, "fair": 1}
        assert apply_rule(rule, {"roof": "Excellent"}, scores).conditions_met is True
        assert apply_rule(rule, {"roof": "fair"}, scores).conditions_met is False

    def test_unknown_option_scores_zero(self):
        assert option_score("purple", {"excellent": 3}) == 0
        assert option_score(True, {}) == 1
        assert option_score("2.5", {}) == 2.5
        assert option_score(["a"], {"a": 3}) == 0

    def test_leading_number_of_free_text(self):
        assert option_score("8 panels", {}) == 8
        assert option_score(" -1.5kW", {}) == -1.5
        assert option_score("panels: 8", {"panels: 8": 2}) == 2

    def test_nan_text_is_looked_up_not_parsed(self):
        assert option_score("nan", {}) == 0
        assert option_score("NaN", {"nan": 4}) == 4
        assert option_score("inf", {}) == 0

        app = apply_rule(self._rule(), {"q1": "nan", "q2": "8 panels"})
        assert app.details["weighted_sum"] == 8
        assert app.conditions_met is False


class TestConditional:

    def _rule(self):
        return _make_rule(
            rule_type="conditional",
            conditions=[
                {"question_id": "owner", "operator": "equals", "value": True},
                {"question_id": "shading", "operator": "equals", "value": False},
            ],
        )

    def test_all_hold(self):
        assert apply_rule(self._rule(), {"owner": True, "shading": False}).conditions_met is True

    def test_one_failing(self):
        app = apply_rule(self._rule(), {"owner": True, "shading": True})
        assert app.conditions_met is False
        assert app.details["condition_results"] == [True, False]

    def test_missing_answer_fails(self):
        assert apply_rule(self._rule(), {"owner": True}).conditions_met is False

    def test_bool_never_equals_number(self):
        rule = _make_rule(
            rule_type="conditional",
            conditions=[{"question_id": "owner", "operator": "equals", "value": 1}],
        )
        assert apply_rule(rule, {"owner": True}).conditions_met is False

    def test_contains_on_multi_select(self):
        rule = _make_rule(
            rule_type="conditional",
            conditions=[{"question_id": "goals", "operator": "contains", "value": "battery"}],
        )
        assert apply_rule(rule, {"goals": ["Savings", "Battery backup"]}).conditions_met is True
        assert apply_rule(rule, {"goals": ["Savings"]}).conditions_met is False

    def test_empty_conditions_not_met(self):
        assert apply_rule(_make_rule(rule_type="conditional", conditions=[]), {}).conditions_met is False


class TestFormula:

    def test_never_met(self):
        app = apply_rule(_make_rule(rule_type="formula"), {"roof_area": 35})
        assert app.conditions_met is False
        assert app.details["error"] == FORMULA_NOT_IMPLEMENTED


class TestDispatch:

    def test_every_rule_type_has_an_evaluator(self):
        assert set(RULE_EVALUATORS) == set(RuleType)
