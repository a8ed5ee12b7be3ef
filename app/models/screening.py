"""
Screening tables.
Schema: solar_screening

Every table carries tenant_id; the repository filters every statement by it.
Template versions, template changes and screening results are append-only.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from app.models.database import SCHEMA, Base


def _utcnow():
    return datetime.now(timezone.utc)


class ScreeningRuleRow(Base):
    __tablename__ = "screening_rules"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    rule_type = Column(String(20), nullable=False)
    category = Column(String(100), nullable=False)

    # ── Definition (JSON for flexibility) ──
    conditions = Column(JSON, nullable=False, default=list)
    scoring = Column(JSON, nullable=False)
    thresholds = Column(JSON, nullable=True)
    recommendations = Column(JSON, nullable=False, default=dict)
    risk_factors = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<ScreeningRule {self.id} {self.rule_type} category={self.category}>"


class ScreeningTemplateRow(Base):
    __tablename__ = "screening_templates"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    questionnaire_template_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # ── Versioning ──
    version = Column(String(20), nullable=False, default="1.0")
    version_number = Column(Integer, nullable=False, default=1)
    parent_version_id = Column(String(36), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)

    screening_rules = Column(JSON, nullable=False, default=list)
    scoring_config = Column(JSON, nullable=False)
    output_config = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<ScreeningTemplate {self.id} v{self.version}>"


class TemplateVersionRow(Base):
    __tablename__ = "screening_template_versions"
    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_template_version"),
        UniqueConstraint("template_id", "version_number", name="uq_template_version_number"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    template_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    version = Column(String(20), nullable=False)
    version_number = Column(Integer, nullable=False)

    # ── Snapshot ──
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    questionnaire_template_id = Column(String(36), nullable=False)
    screening_rules = Column(JSON, nullable=False)
    scoring_config = Column(JSON, nullable=False)
    output_config = Column(JSON, nullable=False)

    version_notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class TemplateChangeRow(Base):
    __tablename__ = "screening_template_changes"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    template_id = Column(String(36), nullable=False, index=True)
    version_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    change_type = Column(String(20), nullable=False)
    field_path = Column(String(100), nullable=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    change_description = Column(Text, nullable=True)
    changed_by = Column(String(100), nullable=True)
    change_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ScreeningResultRow(Base):
    __tablename__ = "screening_results"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    response_id = Column(String(36), nullable=False, index=True)
    template_id = Column(String(36), nullable=False, index=True)
    template_version = Column(String(20), nullable=False)
    template_version_number = Column(Integer, nullable=False)
    lead_id = Column(String(36), nullable=True, index=True)

    # ── Scoring outputs ──
    total_score = Column(Float, nullable=False)
    max_possible_score = Column(Float, nullable=False)
    percentage_score = Column(Float, nullable=False)
    feasibility_rating = Column(String(20), nullable=False)
    qualification_level = Column(String(30), nullable=False)
    risk_level = Column(String(20), nullable=False)
    follow_up_priority = Column(String(10), nullable=False)

    # ── Full result for replay ──
    result_payload = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<ScreeningResult {self.id} {self.qualification_level} score={self.percentage_score}>"


class ConsistencyCheckRow(Base):
    __tablename__ = "screening_assessment_consistency"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    template_id = Column(String(36), nullable=False, index=True)
    version_id = Column(String(36), nullable=True)
    assessment_period_start = Column(DateTime(timezone=True), nullable=False)
    assessment_period_end = Column(DateTime(timezone=True), nullable=False)
    total_assessments = Column(Integer, nullable=False, default=0)
    consistent_assessments = Column(Integer, nullable=False, default=0)
    inconsistent_assessments = Column(Integer, nullable=False, default=0)
    consistency_percentage = Column(Float, nullable=False, default=100.0)
    is_consistent = Column(Boolean, nullable=False, default=True)
    inconsistency_reasons = Column(JSON, nullable=False, default=list)
    affected_results = Column(JSON, nullable=False, default=list)
    resolution_status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class LeadQualificationRuleRow(Base):
    __tablename__ = "screening_lead_qualification_rules"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # ── Criteria ──
    min_screening_score = Column(Float, nullable=True)
    required_feasibility = Column(JSON, nullable=True)
    max_risk_level = Column(String(20), nullable=True)
    required_qualification = Column(JSON, nullable=True)

    # ── Actions ──
    auto_assign_stage_id = Column(String(36), nullable=True)
    auto_assign_status = Column(String(20), nullable=True)
    auto_assign_priority = Column(String(10), nullable=True)
    auto_assign_user_id = Column(String(36), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    rule_order = Column(Integer, nullable=False, default=0)
