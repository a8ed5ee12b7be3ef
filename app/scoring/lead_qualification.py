"""
Lead qualification from screening results.

Links the screening engine to the CRM pipeline:
  - tenant rules auto-assign stage / status / priority / owner
  - without a matching rule, the qualification level decides
  - the lead score blends the CRM score with the screening percentage
"""
from __future__ import annotations

from typing import Optional

from app.schemas.lead_qualification import (
    LeadPriority,
    LeadQualificationRule,
    LeadStatus,
)
from app.schemas.screening_result import (
    EnhancedScreeningResult,
    FeasibilityRating,
    QualificationLevel,
    RiskLevel,
)

RISK_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}

CRM_SCORE_WEIGHT = 0.6
SCREENING_SCORE_WEIGHT = 0.4


def rule_matches(rule: LeadQualificationRule, result: EnhancedScreeningResult) -> bool:
    if rule.min_screening_score is not None and result.percentage_score < rule.min_screening_score:
        return False
    if rule.required_feasibility is not None and result.feasibility_rating not in rule.required_feasibility:
        return False
    if rule.max_risk_level is not None and RISK_RANK[result.risk_level] > RISK_RANK[rule.max_risk_level]:
        return False
    if rule.required_qualification is not None and result.qualification_level not in rule.required_qualification:
        return False
    return True


def match_qualification_rule(
    result: EnhancedScreeningResult,
    rules: list[LeadQualificationRule],
) -> Optional[LeadQualificationRule]:
    """First active rule in rule_order whose criteria all hold."""
    for rule in sorted(rules, key=lambda r: r.rule_order):
        if rule.is_active and rule_matches(rule, result):
            return rule
    return None


def qualification_actions(
    qualification: QualificationLevel,
    feasibility: FeasibilityRating,
) -> tuple[LeadStatus, LeadPriority]:
    if qualification == QualificationLevel.QUALIFIED:
        priority = LeadPriority.HIGH if feasibility == FeasibilityRating.HIGH else LeadPriority.MEDIUM
        return LeadStatus.QUALIFIED, priority
    if qualification == QualificationLevel.PARTIALLY_QUALIFIED:
        return LeadStatus.CONTACTED, LeadPriority.MEDIUM
    return LeadStatus.CLOSED_LOST, LeadPriority.LOW


def blend_lead_score(crm_score: float, screening_score: float) -> int:
    return round(crm_score * CRM_SCORE_WEIGHT + screening_score * SCREENING_SCORE_WEIGHT)
