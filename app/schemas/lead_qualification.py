"""
Lead qualification rules — map a screening result onto CRM pipeline actions.

Rules are checked in rule_order; the first rule whose criteria all hold
supplies the auto-assign actions. Unset criteria always hold.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.screening_result import FeasibilityRating, QualificationLevel, RiskLevel


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class LeadQualificationRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None

    # ── Criteria ──
    min_screening_score: Optional[float] = Field(None, ge=0, le=100)
    required_feasibility: Optional[list[FeasibilityRating]] = None
    max_risk_level: Optional[RiskLevel] = None
    required_qualification: Optional[list[QualificationLevel]] = None

    # ── Actions ──
    auto_assign_stage_id: Optional[str] = None
    auto_assign_status: Optional[LeadStatus] = None
    auto_assign_priority: Optional[LeadPriority] = None
    auto_assign_user_id: Optional[str] = None

    is_active: bool = True
    rule_order: int = 0


class LeadQualificationRule(LeadQualificationRuleCreate):
    id: str
    tenant_id: str


class QualificationDecision(BaseModel):
    """Actions the CRM should apply to the lead linked to a screening result."""
    result_id: str
    lead_id: Optional[str] = None
    qualification_level: QualificationLevel
    matched_rule_id: Optional[str] = None
    matched_rule_name: Optional[str] = None
    stage_id: Optional[str] = None
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    assigned_user_id: Optional[str] = None
    lead_score: Optional[int] = None


class QualificationRequest(BaseModel):
    """Current CRM lead score; when given, the decision carries the blended score."""
    crm_lead_score: Optional[float] = Field(None, ge=0, le=100)


class LeadQualificationRuleUpdate(BaseModel):
    """Partial edit; criteria and actions may be cleared by sending null."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    min_screening_score: Optional[float] = Field(None, ge=0, le=100)
    required_feasibility: Optional[list[FeasibilityRating]] = None
    max_risk_level: Optional[RiskLevel] = None
    required_qualification: Optional[list[QualificationLevel]] = None
    auto_assign_stage_id: Optional[str] = None
    auto_assign_status: Optional[LeadStatus] = None
    auto_assign_priority: Optional[LeadPriority] = None
    auto_assign_user_id: Optional[str] = None
    is_active: Optional[bool] = None
    rule_order: Optional[int] = None
