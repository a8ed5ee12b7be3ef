"""
Rule Evaluator

Evaluates one screening rule against the answers of a questionnaire
response and reports whether its conditions were met.

Each rule type has its own evaluator. Evaluators fill a `details` dict
that ends up in the result's audit trail (applied_rules[].details).

Convention: a rule that cannot be evaluated is NOT met. Errors raised
while evaluating one rule never abort the evaluation of the others.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

import structlog

from app.schemas.screening_rule import (
    ConditionOperator,
    RuleType,
    ScreeningCondition,
    ScreeningRule,
)

logger = structlog.get_logger()

Responses = Mapping[str, Any]
OptionScores = Mapping[str, float]

FORMULA_NOT_IMPLEMENTED = "Formula rules not yet implemented"

# leading decimal number of a free-text answer, e.g. "8 panels" -> 8
LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class RuleApplication:
    rule: ScreeningRule
    conditions_met: bool
    score_awarded: float
    details: dict[str, Any] = field(default_factory=dict)


def apply_rule(
    rule: ScreeningRule,
    responses: Responses,
    option_scores: Optional[OptionScores] = None,
) -> RuleApplication:
    """
    Evaluate `rule` and award its points when met.
    """
    details: dict[str, Any] = {}
    evaluator = RULE_EVALUATORS[rule.rule_type]

    try:
        conditions_met = evaluator(rule, responses, details, option_scores or {})
    except Exception as e:
        logger.warning(
            "rule_evaluation_failed",
            rule_id=rule.id,
            rule_type=rule.rule_type.value,
            error=str(e),
        )
        details["error"] = str(e)
        conditions_met = False

    return RuleApplication(
        rule=rule,
        conditions_met=conditions_met,
        score_awarded=rule.scoring.points if conditions_met else 0.0,
        details=details,
    )


# ═══════════════════════════════════════════════════════════════
# Answer helpers
# ═══════════════════════════════════════════════════════════════

def _strict_equals(answer: Any, expected: Any) -> bool:
    # True == 1 in Python; a yes/no answer must never match a number
    if isinstance(answer, bool) != isinstance(expected, bool):
        return False
    return answer == expected


def _contains(answer: Any, expected: Any) -> bool:
    needle = str(expected).lower()
    if isinstance(answer, list):
        return any(needle in str(item).lower() for item in answer)
    return needle in str(answer).lower()


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Answer {value!r} is not numeric")


def option_score(answer: Any, option_scores: OptionScores) -> float:
    """
    Numeric score of a single answer for weighted sums:
      numbers pass through, booleans → 1/0,
      strings starting with a number score that number,
      other strings are looked up (unknown → 0),
      anything else scores 0.
    """
    if isinstance(answer, bool):
        return 1.0 if answer else 0.0
    if isinstance(answer, (int, float)):
        return float(answer) if math.isfinite(answer) else 0.0
    if isinstance(answer, str):
        match = LEADING_NUMBER.match(answer)
        if match:
            value = float(match.group())
            if math.isfinite(value):
                return value
        lookup = {k.lower(): v for k, v in option_scores.items()}
        return float(lookup.get(answer.strip().lower(), 0.0))
    return 0.0


def _check_condition(condition: ScreeningCondition, answer: Any) -> bool:
    op = condition.operator
    if op == ConditionOperator.EQUALS:
        return _strict_equals(answer, condition.value)
    if op == ConditionOperator.NOT_EQUALS:
        return not _strict_equals(answer, condition.value)
    if op == ConditionOperator.CONTAINS:
        return _contains(answer, condition.value)
    if op == ConditionOperator.NOT_CONTAINS:
        return not _contains(answer, condition.value)
    if op == ConditionOperator.GREATER_THAN:
        return _to_number(answer) > _to_number(condition.value)
    if op == ConditionOperator.LESS_THAN:
        return _to_number(answer) < _to_number(condition.value)
    return False


# ═══════════════════════════════════════════════════════════════
# 1. THRESHOLD — single answer vs. a cut-off
# ═══════════════════════════════════════════════════════════════
THRESHOLD_OPERATORS = {
    ConditionOperator.GREATER_THAN,
    ConditionOperator.LESS_THAN,
    ConditionOperator.EQUALS,
    ConditionOperator.NOT_EQUALS,
}


def evaluate_threshold(rule: ScreeningRule, responses: Responses, details: dict, option_scores: OptionScores) -> bool:
    if not rule.conditions:
        details["no_conditions"] = True
        return False

    condition = rule.conditions[0]
    answer = responses.get(condition.question_id)
    if answer is None:
        details["missing_response"] = condition.question_id
        return False

    details["response_value"] = answer
    details["threshold_value"] = condition.value
    details["operator"] = condition.operator.value

    if condition.operator not in THRESHOLD_OPERATORS:
        details["unsupported_operator"] = condition.operator.value
        return False

    return _check_condition(condition, answer)


# ═══════════════════════════════════════════════════════════════
# 2. RANGE — numeric answer within [min, max], bounds inclusive
# ═══════════════════════════════════════════════════════════════
def evaluate_range(rule: ScreeningRule, responses: Responses, details: dict, option_scores: OptionScores) -> bool:
    if not rule.conditions:
        details["no_conditions"] = True
        return False

    condition = rule.conditions[0]
    answer = responses.get(condition.question_id)
    if answer is None:
        details["missing_response"] = condition.question_id
        return False

    bounds = condition.value if isinstance(condition.value, list) else [condition.value]
    if len(bounds) < 2:
        details["invalid_range"] = condition.value
        return False

    low, high = _to_number(bounds[0]), _to_number(bounds[1])
    value = _to_number(answer)
    details["range"] = {"min": low, "max": high}
    details["response_value"] = value
    return low <= value <= high


# ═══════════════════════════════════════════════════════════════
# 3. WEIGHTED SUM — Σ score(answer) × weight over all conditions
#    met iff the sum reaches the rule's medium threshold,
#    or 60% of the rule's points when none is configured
# ═══════════════════════════════════════════════════════════════
DEFAULT_WEIGHTED_SUM_RATIO = 0.6


def evaluate_weighted_sum(rule: ScreeningRule, responses: Responses, details: dict, option_scores: OptionScores) -> bool:
    weighted_sum = 0.0
    total_weight = 0.0
    condition_results = []

    for condition in rule.conditions:
        answer = responses.get(condition.question_id)
        if answer is None:
            continue

        score = option_score(answer, option_scores)
        weighted = score * condition.weight
        weighted_sum += weighted
        total_weight += condition.weight
        condition_results.append({
            "question_id": condition.question_id,
            "response_value": answer,
            "condition_score": score,
            "weight": condition.weight,
            "weighted_score": weighted,
        })

    if rule.thresholds is not None and rule.thresholds.medium is not None:
        threshold = rule.thresholds.medium
    else:
        threshold = rule.scoring.points * DEFAULT_WEIGHTED_SUM_RATIO

    details["condition_results"] = condition_results
    details["weighted_sum"] = weighted_sum
    details["total_weight"] = total_weight
    details["average_score"] = weighted_sum / total_weight if total_weight > 0 else 0.0
    details["threshold"] = threshold
    return weighted_sum >= threshold


# ═══════════════════════════════════════════════════════════════
# 4. CONDITIONAL — every condition must hold (AND)
# ═══════════════════════════════════════════════════════════════
def evaluate_conditional(rule: ScreeningRule, responses: Responses, details: dict, option_scores: OptionScores) -> bool:
    if not rule.conditions:
        details["no_conditions"] = True
        return False

    results = []
    for condition in rule.conditions:
        answer = responses.get(condition.question_id)
        results.append(False if answer is None else _check_condition(condition, answer))

    details["condition_results"] = results
    return all(results)


# ═══════════════════════════════════════════════════════════════
# 5. FORMULA — reserved; no expression language is defined
# ═══════════════════════════════════════════════════════════════
def evaluate_formula(rule: ScreeningRule, responses: Responses, details: dict, option_scores: OptionScores) -> bool:
    details["error"] = FORMULA_NOT_IMPLEMENTED
    return False


Evaluator = Callable[[ScreeningRule, Responses, dict, OptionScores], bool]

RULE_EVALUATORS: dict[RuleType, Evaluator] = {
    RuleType.THRESHOLD: evaluate_threshold,
    RuleType.RANGE: evaluate_range,
    RuleType.WEIGHTED_SUM: evaluate_weighted_sum,
    RuleType.CONDITIONAL: evaluate_conditional,
    RuleType.FORMULA: evaluate_formula,
}
assert set(RULE_EVALUATORS) == set(RuleType), "Every rule type needs an evaluator"
