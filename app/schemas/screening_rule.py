"""
Screening rule definitions — tenant-defined, typed predicates over
questionnaire answers that award points when satisfied.

rule_type decides which condition fields are meaningful:
  threshold     → first condition, compared with its operator
  range         → first condition, value = [min, max] (inclusive)
  weighted_sum  → all conditions, answers converted to numeric scores
  conditional   → all conditions, AND semantics
  formula       → reserved, never met
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class RuleType(str, Enum):
    THRESHOLD = "threshold"
    RANGE = "range"
    WEIGHTED_SUM = "weighted_sum"
    CONDITIONAL = "conditional"
    FORMULA = "formula"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


ConditionValue = Union[bool, int, float, str, list[Union[int, float, str]]]


class ScreeningCondition(BaseModel):
    """One predicate on a single questionnaire answer."""
    question_id: str
    operator: ConditionOperator
    value: ConditionValue
    weight: float = 1.0
    metadata: dict[str, Any] = {}


class RuleScoring(BaseModel):
    points: float
    weight: float = 1.0
    max_points: Optional[float] = None


class RuleThresholds(BaseModel):
    high: Optional[float] = None
    medium: Optional[float] = None
    low: Optional[float] = None


class RuleRecommendations(BaseModel):
    """Message shown per outcome of the rule."""
    qualified: Optional[str] = None
    partially_qualified: Optional[str] = None
    not_qualified: Optional[str] = None


class ScreeningRuleBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    rule_type: RuleType
    category: str = Field(max_length=100, description="e.g. technical, financial, commercial")
    conditions: list[ScreeningCondition] = []
    scoring: RuleScoring
    thresholds: Optional[RuleThresholds] = None
    recommendations: RuleRecommendations = RuleRecommendations()
    risk_factors: list[str] = []
    is_active: bool = True
    priority: int = Field(0, description="Lower = more critical")


class ScreeningRuleCreate(ScreeningRuleBase):
    pass


class ScreeningRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    rule_type: Optional[RuleType] = None
    category: Optional[str] = None
    conditions: Optional[list[ScreeningCondition]] = None
    scoring: Optional[RuleScoring] = None
    thresholds: Optional[RuleThresholds] = None
    recommendations: Optional[RuleRecommendations] = None
    risk_factors: Optional[list[str]] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None


class ScreeningRule(ScreeningRuleBase):
    id: str
    tenant_id: str
    created_at: datetime
    updated_at: datetime
