"""
Rating Classifier

Maps the aggregate percentage score onto feasibility and qualification
bands, and rule failures / risk factors onto a risk level.

Bands are checked top-down; the first band whose cut-off is reached wins.
"""
from __future__ import annotations

from app.schemas.screening_result import (
    FeasibilityRating,
    Priority,
    QualificationLevel,
    RiskLevel,
)
from app.schemas.screening_template import (
    FeasibilityThresholds,
    QualificationThresholds,
    RiskThresholds,
)
from app.scoring.rules import RuleApplication

# Rules at or above this criticality (priority ≤ 2) escalate risk when failed
CRITICAL_RULE_PRIORITY = 2


def classify_feasibility(percentage_score: float, thresholds: FeasibilityThresholds) -> FeasibilityRating:
    if percentage_score >= thresholds.high:
        return FeasibilityRating.HIGH
    if percentage_score >= thresholds.medium:
        return FeasibilityRating.MEDIUM
    if percentage_score >= thresholds.low:
        return FeasibilityRating.LOW
    return FeasibilityRating.NOT_FEASIBLE


def classify_qualification(percentage_score: float, thresholds: QualificationThresholds) -> QualificationLevel:
    if percentage_score >= thresholds.qualified:
        return QualificationLevel.QUALIFIED
    if percentage_score >= thresholds.partially_qualified:
        return QualificationLevel.PARTIALLY_QUALIFIED
    return QualificationLevel.NOT_QUALIFIED


def classify_risk(applications: list[RuleApplication], thresholds: RiskThresholds) -> RiskLevel:
    """
    critical: ≥2 critical rules failed, or risk factor count ≥ critical
    high:     ≥1 critical rule failed,  or risk factor count ≥ high
    medium:   risk factor count ≥ medium
    """
    critical_failed = sum(
        1 for app in applications
        if app.rule.priority <= CRITICAL_RULE_PRIORITY and not app.conditions_met
    )
    # counts the risk factors of every applied rule, met or not
    risk_factor_count = sum(len(app.rule.risk_factors) for app in applications)

    if critical_failed >= 2 or risk_factor_count >= thresholds.critical:
        return RiskLevel.CRITICAL
    if critical_failed >= 1 or risk_factor_count >= thresholds.high:
        return RiskLevel.HIGH
    if risk_factor_count >= thresholds.medium:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def follow_up_priority(qualification: QualificationLevel, feasibility: FeasibilityRating) -> Priority:
    qualified = qualification == QualificationLevel.QUALIFIED
    high_feasibility = feasibility == FeasibilityRating.HIGH

    if qualified and high_feasibility:
        return Priority.HIGH
    if qualified or high_feasibility:
        return Priority.MEDIUM
    return Priority.LOW
