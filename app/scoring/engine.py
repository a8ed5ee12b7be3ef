"""
Screening Engine

Orchestrates one screening run:
  1. Rule evaluation (per applicable rule)
  2. Category + total aggregation
  3. Feasibility / qualification / risk classification
  4. Recommendations, risk factors, next steps
  5. Project estimates
  6. Result assembly with audit trail

Pure: no I/O. Persistence and template resolution live in
app.services.screening_service.
"""
from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from app.schemas.questionnaire import QuestionnaireResponse
from app.schemas.screening_result import (
    AppliedRule,
    CalculationMetadata,
    EnhancedScreeningResult,
)
from app.schemas.screening_rule import ScreeningRule
from app.schemas.screening_template import ScreeningTemplate
from app.scoring.aggregation import aggregate
from app.scoring.classification import (
    classify_feasibility,
    classify_qualification,
    classify_risk,
    follow_up_priority,
)
from app.scoring.estimates import calculate_project_estimates
from app.scoring.recommendations import (
    generate_next_steps,
    generate_recommendations,
    generate_risk_factors,
)
from app.scoring.rules import apply_rule

logger = structlog.get_logger()

ENGINE_VERSION = "1.0"

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def select_applicable_rules(template: ScreeningTemplate, rules: list[ScreeningRule]) -> list[ScreeningRule]:
    """Active rules referenced by the template, in the order given (priority order)."""
    wanted = set(template.screening_rules)
    return [rule for rule in rules if rule.id in wanted and rule.is_active]


def evaluate_screening(
    tenant_id: str,
    response: QuestionnaireResponse,
    template: ScreeningTemplate,
    rules: list[ScreeningRule],
    lead_id: Optional[str] = None,
    clock: Clock = utc_now,
    id_factory: IdFactory = new_id,
    engine_version: str = ENGINE_VERSION,
) -> EnhancedScreeningResult:
    """
    Main scoring entry point. `rules` must already be restricted to the
    template's applicable rules (see select_applicable_rules).
    """
    t0 = time.perf_counter_ns()
    scoring_config = template.scoring_config
    output_config = template.output_config
    warnings: list[str] = []

    # ── Step 1: Evaluate every rule ──
    applications = [
        apply_rule(rule, response.responses, scoring_config.option_scores)
        for rule in rules
    ]
    for app in applications:
        if "error" in app.details:
            warnings.append(f"Rule {app.rule.id} ({app.rule.name}): {app.details['error']}")

    # ── Step 2: Aggregate ──
    totals = aggregate(applications)

    # ── Step 3: Ratings ──
    feasibility = classify_feasibility(totals.percentage_score, scoring_config.feasibility_thresholds)
    qualification = classify_qualification(totals.percentage_score, scoring_config.qualification_thresholds)
    risk = classify_risk(applications, scoring_config.risk_thresholds)

    # ── Step 4: Guidance ──
    recommendations = (
        generate_recommendations(applications, qualification)
        if output_config.include_recommendations else []
    )
    risk_factors = generate_risk_factors(applications) if output_config.include_risk_factors else []
    next_steps = generate_next_steps(qualification) if output_config.include_next_steps else []

    # ── Step 5: Estimates ──
    estimates = None
    if output_config.include_estimates:
        estimates = calculate_project_estimates(
            response.responses,
            totals.percentage_score,
            output_config.estimator,
            warnings,
        )

    elapsed_ms = int((time.perf_counter_ns() - t0) / 1_000_000)
    calculated_at = clock()
    result_id = id_factory()

    logger.info(
        "screening_evaluation_complete",
        result_id=result_id,
        tenant_id=tenant_id,
        template_id=template.id,
        response_id=response.id,
        percentage_score=round(totals.percentage_score, 2),
        qualification=qualification.value,
        feasibility=feasibility.value,
        risk=risk.value,
        rules_processed=len(applications),
        warnings=len(warnings),
        elapsed_ms=elapsed_ms,
    )

    return EnhancedScreeningResult(
        id=result_id,
        tenant_id=tenant_id,
        response_id=response.id,
        template_id=template.id,
        template_version=template.version,
        template_version_number=template.version_number,
        lead_id=lead_id,
        total_score=totals.total_score,
        max_possible_score=totals.max_possible_score,
        percentage_score=totals.percentage_score,
        category_scores=totals.category_scores,
        feasibility_rating=feasibility,
        qualification_level=qualification,
        risk_level=risk,
        follow_up_priority=follow_up_priority(qualification, feasibility),
        recommendations=recommendations,
        risk_factors=risk_factors,
        next_steps=next_steps,
        project_estimates=estimates,
        applied_rules=[
            AppliedRule(
                rule_id=app.rule.id,
                rule_name=app.rule.name,
                category=app.rule.category,
                conditions_met=app.conditions_met,
                score_awarded=app.score_awarded,
                max_score=app.rule.scoring.points,
                details=app.details,
            )
            for app in applications
        ],
        calculation_metadata=CalculationMetadata(
            version=engine_version,
            calculated_at=calculated_at,
            calculation_time_ms=elapsed_ms,
            rules_processed=len(applications),
            warnings=warnings,
            debug_info={
                "template_version": template.version,
                "rules_applied": len(applications),
                "categories_processed": len(totals.category_scores),
            },
        ),
        created_at=calculated_at,
    )
