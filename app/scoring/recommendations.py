"""
Recommendation / Next-Steps Generator

Turns rule outcomes into guidance for the sales team:
  - one recommendation per rule with a message for its outcome
  - one risk factor per risk_factors entry of every failed rule
  - a fixed next-steps checklist per qualification level
"""
from __future__ import annotations

from app.schemas.screening_result import (
    NextStep,
    Priority,
    QualificationLevel,
    Recommendation,
    RiskFactor,
    RiskLevel,
)
from app.scoring.rules import RuleApplication

ACTION_REQUIRED_MAX_PRIORITY = 3


def _priority_band(rule_priority: int) -> Priority:
    if rule_priority <= 2:
        return Priority.HIGH
    if rule_priority <= 4:
        return Priority.MEDIUM
    return Priority.LOW


def generate_recommendations(
    applications: list[RuleApplication],
    qualification: QualificationLevel,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    for app in applications:
        messages = app.rule.recommendations
        message = None

        if app.conditions_met:
            message = messages.qualified
        elif qualification == QualificationLevel.PARTIALLY_QUALIFIED and messages.partially_qualified:
            message = messages.partially_qualified
        else:
            message = messages.not_qualified

        if not message:
            continue

        recommendations.append(Recommendation(
            category=app.rule.category,
            message=message,
            priority=_priority_band(app.rule.priority),
            action_required=not app.conditions_met and app.rule.priority <= ACTION_REQUIRED_MAX_PRIORITY,
        ))

    return recommendations


def generate_risk_factors(applications: list[RuleApplication]) -> list[RiskFactor]:
    risk_factors: list[RiskFactor] = []

    for app in applications:
        if app.conditions_met:
            continue
        severity = RiskLevel(_priority_band(app.rule.priority).value)
        for factor in app.rule.risk_factors:
            risk_factors.append(RiskFactor(
                factor=factor,
                severity=severity,
                description=f"Risk identified in {app.rule.category} assessment",
                mitigation=f"Address {factor.lower()} before proceeding with installation",
            ))

    return risk_factors


# ═══════════════════════════════════════════════════════════════
# Next steps — canned checklists, not rule driven
# ═══════════════════════════════════════════════════════════════
NEXT_STEPS: dict[QualificationLevel, list[NextStep]] = {
    QualificationLevel.QUALIFIED: [
        NextStep(
            step="Schedule Site Assessment",
            description="Conduct detailed on-site evaluation of roof and electrical system",
            priority=1,
            estimated_duration="1-2 hours",
        ),
        NextStep(
            step="Prepare Detailed Proposal",
            description="Create customized solar system proposal with financial analysis",
            priority=2,
            estimated_duration="2-3 days",
        ),
        NextStep(
            step="Present Solution",
            description="Schedule presentation meeting to discuss proposal and answer questions",
            priority=3,
            estimated_duration="1 hour",
        ),
    ],
    QualificationLevel.PARTIALLY_QUALIFIED: [
        NextStep(
            step="Address Qualification Issues",
            description="Work with customer to resolve identified concerns or limitations",
            priority=1,
            estimated_duration="1-2 weeks",
        ),
        NextStep(
            step="Follow-up Assessment",
            description="Re-evaluate project feasibility after addressing initial concerns",
            priority=2,
            estimated_duration="1 week",
        ),
    ],
    QualificationLevel.NOT_QUALIFIED: [
        NextStep(
            step="Educational Follow-up",
            description="Provide information about solar benefits and future opportunities",
            priority=1,
            estimated_duration="30 minutes",
        ),
        NextStep(
            step="Future Re-evaluation",
            description="Schedule follow-up in 6-12 months to reassess situation",
            priority=2,
            estimated_duration="15 minutes",
        ),
    ],
}


def generate_next_steps(qualification: QualificationLevel) -> list[NextStep]:
    return [step.model_copy() for step in NEXT_STEPS[qualification]]
