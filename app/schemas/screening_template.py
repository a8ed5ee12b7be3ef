"""
Screening templates, their immutable version snapshots and change log.

A template pairs a questionnaire template with a list of rule ids and the
scoring configuration used to classify the aggregate score.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class QualificationThresholds(BaseModel):
    qualified: float = 70.0
    partially_qualified: float = 40.0
    not_qualified: float = 0.0


class FeasibilityThresholds(BaseModel):
    high: float = 80.0
    medium: float = 60.0
    low: float = 40.0
    not_feasible: float = 0.0


class RiskThresholds(BaseModel):
    """Cut-offs on the number of risk factors carried by the applied rules."""
    low: float = 0
    medium: float = 2
    high: float = 4
    critical: float = 6


class ScoringConfig(BaseModel):
    max_score: float = Field(100.0, gt=0)
    qualification_thresholds: QualificationThresholds = QualificationThresholds()
    feasibility_thresholds: FeasibilityThresholds = FeasibilityThresholds()
    risk_thresholds: RiskThresholds = RiskThresholds()
    option_scores: dict[str, float] = Field(
        default_factory=dict,
        description="Option answer → numeric score used by weighted_sum rules (case-insensitive)",
    )


class EstimatorConfig(BaseModel):
    """Inputs of the project estimator. Without a bill question no estimates are produced."""
    monthly_bill_question_id: Optional[str] = None
    tariff_per_kwh: float = Field(0.65, gt=0)
    yield_kwh_per_kwp: float = Field(1200.0, gt=0)
    investment_per_kwp: float = Field(4500.0, ge=0)
    currency: str = "BRL"


class OutputConfig(BaseModel):
    include_recommendations: bool = True
    include_risk_factors: bool = True
    include_next_steps: bool = True
    include_estimates: bool = True
    custom_fields: dict[str, Any] = {}
    estimator: EstimatorConfig = EstimatorConfig()


class ScreeningTemplateBase(BaseModel):
    questionnaire_template_id: str
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    version: str = Field("1.0", pattern=r"^\d+\.\d+$")
    screening_rules: list[str] = Field(default_factory=list, description="Rule ids")
    scoring_config: ScoringConfig = ScoringConfig()
    output_config: OutputConfig = OutputConfig()
    is_active: bool = True


class ScreeningTemplateCreate(ScreeningTemplateBase):
    pass


class ScreeningTemplateUpdate(BaseModel):
    questionnaire_template_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    screening_rules: Optional[list[str]] = None
    scoring_config: Optional[ScoringConfig] = None
    output_config: Optional[OutputConfig] = None
    is_active: Optional[bool] = None


class ScreeningTemplate(ScreeningTemplateBase):
    id: str
    tenant_id: str
    version_number: int = 1
    parent_version_id: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ═══════════════════════════════════════════════════════════════
# Version control
# ═══════════════════════════════════════════════════════════════

class TemplateVersion(BaseModel):
    """Immutable snapshot of a template at a point in time."""
    id: str
    template_id: str
    tenant_id: str
    version: str
    version_number: int
    name: str
    description: Optional[str] = None
    questionnaire_template_id: str
    screening_rules: list[str]
    scoring_config: ScoringConfig
    output_config: OutputConfig
    version_notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime


class ChangeType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RULE_ADD = "rule_add"
    RULE_REMOVE = "rule_remove"
    CONFIG_CHANGE = "config_change"
    ACTIVATION = "activation"
    DEACTIVATION = "deactivation"


class TemplateChange(BaseModel):
    id: str
    template_id: str
    version_id: str
    tenant_id: str
    change_type: ChangeType
    field_path: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    change_description: Optional[str] = None
    changed_by: Optional[str] = None
    change_reason: Optional[str] = None
    created_at: datetime


class VersionChange(BaseModel):
    field: str
    type: str = Field(description="added | removed | modified")
    old_value: Any = None
    new_value: Any = None
    description: str


class VersionComparisonSummary(BaseModel):
    total_changes: int
    added_items: int
    removed_items: int
    modified_items: int


class VersionComparison(BaseModel):
    from_version: str
    to_version: str
    changes: list[VersionChange]
    summary: VersionComparisonSummary


class ResolutionStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    ACCEPTED = "accepted"


class ConsistencyCheck(BaseModel):
    """Whether the assessments of a period were all scored under the current template version."""
    id: str
    tenant_id: str
    template_id: str
    version_id: Optional[str] = None
    assessment_period_start: datetime
    assessment_period_end: datetime
    total_assessments: int
    consistent_assessments: int
    inconsistent_assessments: int
    consistency_percentage: float
    is_consistent: bool
    inconsistency_reasons: list[str] = []
    affected_results: list[str] = []
    resolution_status: ResolutionStatus = ResolutionStatus.PENDING
    created_at: datetime


# ═══════════════════════════════════════════════════════════════
# Request bodies
# ═══════════════════════════════════════════════════════════════

class DefaultTemplateRequest(BaseModel):
    """Installs the default solar rule set for a questionnaire."""
    questionnaire_template_id: str
    question_ids: dict[str, str] = Field(
        description="Role (monthly_bill, roof_condition, roof_orientation, "
                    "significant_shading, interest_level) → question id",
    )
    name: str = Field("Solar Project Screening", min_length=1, max_length=200)


class VersionCreateRequest(BaseModel):
    version_notes: Optional[str] = None
    auto_increment: bool = True


class RevertRequest(BaseModel):
    target_version: str = Field(pattern=r"^\d+\.\d+$")
    revert_notes: Optional[str] = None


class ConsistencyCheckRequest(BaseModel):
    period_start: datetime
    period_end: datetime
