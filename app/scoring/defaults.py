"""
Default solar screening rule set.

Installed for a tenant when a questionnaire is linked to screening for the
first time. Conditions reference questions by role (monthly_bill, roof_condition,
...); the caller maps each role to the question id of its questionnaire.
"""
from __future__ import annotations

from app.schemas.screening_rule import ScreeningRuleCreate
from app.schemas.screening_template import OutputConfig, EstimatorConfig, ScoringConfig

QUESTION_ROLES = (
    "monthly_bill",
    "roof_condition",
    "roof_orientation",
    "significant_shading",
    "interest_level",
)

DEFAULT_OPTION_SCORES: dict[str, float] = {
    "excellent": 3,
    "good": 2,
    "fair": 1,
    "poor": 0,
    "north": 3,
    "northeast": 2.5,
    "northwest": 2.5,
    "east": 2,
    "west": 2,
    "south": 1,
    "house": 2,
    "apartment": 1,
    "commercial": 2,
    "rural": 3,
}


def _rule_specs() -> list[dict]:
    return [
        {
            "name": "High Energy Consumption",
            "description": "Customers with high monthly energy bills are better candidates",
            "rule_type": "threshold",
            "category": "financial",
            "conditions": [{"question_id": "monthly_bill", "operator": "greater_than", "value": 300}],
            "scoring": {"points": 25, "weight": 2.0},
            "thresholds": {"high": 500, "medium": 300, "low": 150},
            "recommendations": {
                "qualified": "Excellent candidate for solar installation with high potential savings",
                "partially_qualified": "Good candidate with moderate savings potential",
                "not_qualified": "Low energy consumption may not justify solar investment",
            },
            "priority": 1,
        },
        {
            "name": "Roof Condition Assessment",
            "description": "Roof condition affects installation feasibility and costs",
            "rule_type": "weighted_sum",
            "category": "technical",
            "conditions": [{"question_id": "roof_condition", "operator": "equals", "value": "excellent"}],
            "scoring": {"points": 20, "weight": 1.5},
            "thresholds": {"medium": 2},
            "recommendations": {
                "qualified": "Roof is in excellent condition for solar installation",
                "partially_qualified": "Roof may need minor repairs before installation",
                "not_qualified": "Roof requires significant repairs before solar installation",
            },
            "risk_factors": ["Roof structural integrity", "Weather resistance"],
            "priority": 2,
        },
        {
            "name": "Solar Orientation Optimization",
            "description": "Roof orientation affects solar panel efficiency",
            "rule_type": "weighted_sum",
            "category": "technical",
            "conditions": [{"question_id": "roof_orientation", "operator": "equals", "value": "north"}],
            "scoring": {"points": 15, "weight": 1.0},
            "thresholds": {"medium": 2},
            "recommendations": {
                "qualified": "Optimal roof orientation for maximum solar efficiency",
                "partially_qualified": "Good roof orientation with acceptable efficiency",
                "not_qualified": "Suboptimal orientation may reduce system efficiency",
            },
            "priority": 3,
        },
        {
            "name": "Shading Impact Assessment",
            "description": "Shading significantly reduces solar panel efficiency",
            "rule_type": "conditional",
            "category": "technical",
            "conditions": [{"question_id": "significant_shading", "operator": "equals", "value": False}],
            "scoring": {"points": 10, "weight": 1.0},
            "recommendations": {
                "qualified": "Minimal shading allows for optimal solar performance",
                "not_qualified": "Significant shading may require system redesign or tree removal",
            },
            "risk_factors": ["Reduced energy production", "Potential hot spots on panels"],
            "priority": 4,
        },
        {
            "name": "Customer Interest Level",
            "description": "Customer interest level affects project success probability",
            "rule_type": "threshold",
            "category": "commercial",
            "conditions": [{"question_id": "interest_level", "operator": "greater_than", "value": 7}],
            "scoring": {"points": 10, "weight": 0.5},
            "thresholds": {"high": 9, "medium": 7, "low": 5},
            "recommendations": {
                "qualified": "High customer interest indicates strong project potential",
                "partially_qualified": "Moderate interest requires additional nurturing",
                "not_qualified": "Low interest may indicate poor timing or fit",
            },
            "priority": 5,
        },
    ]


def default_solar_rules(question_ids: dict[str, str]) -> list[ScreeningRuleCreate]:
    """
    The default rules with condition roles replaced by `question_ids[role]`.
    Raises KeyError naming the first role without a question id.
    """
    missing = [role for role in QUESTION_ROLES if role not in question_ids]
    if missing:
        raise KeyError(f"No question id for role: {missing[0]}")

    rules = []
    for spec in _rule_specs():
        for condition in spec["conditions"]:
            condition["question_id"] = question_ids[condition["question_id"]]
        rules.append(ScreeningRuleCreate(**spec))
    return rules


def default_scoring_config() -> ScoringConfig:
    return ScoringConfig(option_scores=dict(DEFAULT_OPTION_SCORES))


def default_output_config(question_ids: dict[str, str]) -> OutputConfig:
    return OutputConfig(estimator=EstimatorConfig(monthly_bill_question_id=question_ids.get("monthly_bill")))
