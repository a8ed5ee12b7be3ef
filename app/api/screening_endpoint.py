"""
POST /v1/tenants/{tenant_id}/screening/evaluate

Scores a questionnaire response against the tenant's screening template.
Synchronous request → score → response.
Persists every result and publishes an event to Kafka (if enabled).
"""
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.dependencies import get_screening_service
from app.core.auth import caller_id, verify_token
from app.core.config import get_settings
from app.core.exceptions import NOT_FOUND_ERRORS
from app.schemas.lead_qualification import (
    LeadQualificationRule,
    LeadQualificationRuleCreate,
    LeadQualificationRuleUpdate,
    QualificationDecision,
    QualificationRequest,
)
from app.schemas.questionnaire import ScreeningRequest
from app.schemas.screening_result import EnhancedScreeningResult
from app.services.screening_service import ScreeningService

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/tenants/{tenant_id}/screening", tags=["screening"])
health_router = APIRouter(prefix="/v1/screening", tags=["health"])


@router.post(
    "/evaluate",
    response_model=EnhancedScreeningResult,
    summary="Screen a questionnaire response",
    description="Resolves the screening template, applies its rules and returns scores, ratings and guidance.",
)
async def evaluate_screening(
    tenant_id: str,
    request: ScreeningRequest,
    token_payload: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
) -> EnhancedScreeningResult:

    logger.info(
        "screening_request_received",
        tenant_id=tenant_id,
        response_id=request.response.id,
        template_id=request.template_id,
        lead_id=request.lead_id,
        caller=caller_id(token_payload) or "unknown",
    )

    try:
        return await service.process_screening(
            tenant_id,
            request.response,
            template_id=request.template_id,
            lead_id=request.lead_id,
        )
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("screening_failed", tenant_id=tenant_id, response_id=request.response.id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Screening engine error: {e}")


@router.get("/results/{result_id}", response_model=EnhancedScreeningResult)
async def get_result(
    tenant_id: str,
    result_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    try:
        return await service.get_screening_result(result_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.get("/results", response_model=list[EnhancedScreeningResult])
async def list_results(
    tenant_id: str,
    template_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.list_screening_results(tenant_id, template_id=template_id, limit=limit)


# ── Lead qualification ──

@router.post("/results/{result_id}/qualification", response_model=QualificationDecision)
async def qualify_result(
    tenant_id: str,
    result_id: str,
    body: Optional[QualificationRequest] = None,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    crm_lead_score = body.crm_lead_score if body else None
    try:
        return await service.qualify_result(result_id, tenant_id, crm_lead_score=crm_lead_score)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.get("/qualification-rules", response_model=list[LeadQualificationRule])
async def list_qualification_rules(
    tenant_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.list_qualification_rules(tenant_id)


@router.post("/qualification-rules", response_model=LeadQualificationRule, status_code=201)
async def create_qualification_rule(
    tenant_id: str,
    body: LeadQualificationRuleCreate,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    rule = await service.create_qualification_rule(tenant_id, body)
    logger.info("qualification_rule_created", tenant_id=tenant_id, rule_id=rule.id, created_by=caller_id(token))
    return rule


@router.put("/qualification-rules/{rule_id}", response_model=LeadQualificationRule)
async def update_qualification_rule(
    tenant_id: str,
    rule_id: str,
    body: LeadQualificationRuleUpdate,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    if not body.model_dump(exclude_unset=True):
        raise HTTPException(400, "No fields to update")
    try:
        return await service.update_qualification_rule(rule_id, tenant_id, body)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.delete("/qualification-rules/{rule_id}", status_code=204)
async def delete_qualification_rule(
    tenant_id: str,
    rule_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    try:
        await service.delete_qualification_rule(rule_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    logger.info("qualification_rule_removed", tenant_id=tenant_id, rule_id=rule_id, removed_by=caller_id(token))
    return Response(status_code=204)


@health_router.get("/health")
async def health():
    settings = get_settings()
    return {"status": "ok", "service": settings.app_name, "engine_version": settings.engine_version}
