"""
Result of one screening run, returned to the dashboard and persisted.

The dashboard uses: feasibility_rating, percentage_score, recommendations
and project_estimates to render the assessment card.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class FeasibilityRating(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NOT_FEASIBLE = "not_feasible"


class QualificationLevel(str, Enum):
    QUALIFIED = "qualified"
    PARTIALLY_QUALIFIED = "partially_qualified"
    NOT_QUALIFIED = "not_qualified"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CategoryScore(BaseModel):
    score: float
    max_score: float
    percentage: float
    weight: float


class Recommendation(BaseModel):
    category: str
    message: str
    priority: Priority
    action_required: bool = False


class RiskFactor(BaseModel):
    factor: str
    severity: RiskLevel
    description: str
    mitigation: Optional[str] = None


class NextStep(BaseModel):
    step: str
    description: str
    priority: int
    estimated_duration: Optional[str] = None


class SystemSizeEstimate(BaseModel):
    min_kwp: float
    max_kwp: float
    recommended_kwp: float
    confidence: float = Field(ge=0, le=100)


class InvestmentEstimate(BaseModel):
    min_amount: float
    max_amount: float
    estimated_amount: float
    currency: str = "BRL"
    confidence: float = Field(ge=0, le=100)


class PaybackEstimate(BaseModel):
    min_months: int
    max_months: int
    estimated_months: int


class SavingsEstimate(BaseModel):
    min_amount: float
    max_amount: float
    estimated_amount: float
    currency: str = "BRL"


class ProjectEstimates(BaseModel):
    system_size: SystemSizeEstimate
    investment: InvestmentEstimate
    payback_period: PaybackEstimate
    annual_savings: SavingsEstimate


class AppliedRule(BaseModel):
    """Audit trail of one rule's contribution."""
    rule_id: str
    rule_name: str
    category: str
    conditions_met: bool
    score_awarded: float
    max_score: float
    details: dict[str, Any] = {}


class CalculationMetadata(BaseModel):
    version: str
    calculated_at: datetime
    calculation_time_ms: Optional[int] = None
    rules_processed: int
    warnings: list[str] = []
    debug_info: dict[str, Any] = {}


class EnhancedScreeningResult(BaseModel):
    id: str
    tenant_id: str
    response_id: str
    template_id: str
    template_version: str
    template_version_number: int
    lead_id: Optional[str] = None

    # ── Core scoring ──
    total_score: float = Field(ge=0)
    max_possible_score: float = Field(ge=0)
    percentage_score: float = Field(ge=0, le=100)
    category_scores: dict[str, CategoryScore] = {}

    # ── Assessment ──
    feasibility_rating: FeasibilityRating
    qualification_level: QualificationLevel
    risk_level: RiskLevel
    follow_up_priority: Priority

    # ── Guidance ──
    recommendations: list[Recommendation] = []
    risk_factors: list[RiskFactor] = []
    next_steps: list[NextStep] = []
    project_estimates: Optional[ProjectEstimates] = None

    applied_rules: list[AppliedRule] = []
    calculation_metadata: CalculationMetadata
    created_at: datetime
