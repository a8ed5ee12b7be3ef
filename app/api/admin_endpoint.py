"""
Admin API — CRUD for screening rules and templates.

Endpoints (under /v1/tenants/{tenant_id}/screening):
  GET/POST /rules, PUT/DELETE /rules/{rule_id}
  GET/POST /templates, GET/PUT/DELETE /templates/{template_id}
  POST /templates/default
    → Install the default solar rule set for a questionnaire

Template edits are versioned and change-logged by the version manager.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.dependencies import get_screening_service, get_version_manager
from app.core.auth import caller_id, verify_token
from app.core.exceptions import NOT_FOUND_ERRORS
from app.schemas.screening_rule import ScreeningRule, ScreeningRuleCreate, ScreeningRuleUpdate
from app.schemas.screening_template import (
    DefaultTemplateRequest,
    ScreeningTemplate,
    ScreeningTemplateCreate,
    ScreeningTemplateUpdate,
)
from app.services.screening_service import ScreeningService
from app.services.template_versions import TemplateVersionManager

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/tenants/{tenant_id}/screening", tags=["admin"])


# ── Rules ──

@router.get("/rules", response_model=list[ScreeningRule])
async def list_rules(
    tenant_id: str,
    active_only: bool = True,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.list_rules(tenant_id, active_only=active_only)


@router.post("/rules", response_model=ScreeningRule, status_code=201)
async def create_rule(
    tenant_id: str,
    body: ScreeningRuleCreate,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.create_rule(tenant_id, body)


@router.put("/rules/{rule_id}", response_model=ScreeningRule)
async def update_rule(
    tenant_id: str,
    rule_id: str,
    body: ScreeningRuleUpdate,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    if not body.model_dump(exclude_unset=True):
        raise HTTPException(400, "No fields to update")
    try:
        return await service.update_rule(rule_id, tenant_id, body, changed_by=caller_id(token))
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.delete("/rules/{rule_id}", status_code=204)
async def delete_rule(
    tenant_id: str,
    rule_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    try:
        await service.delete_rule(rule_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    return Response(status_code=204)


# ── Templates ──

@router.get("/templates", response_model=list[ScreeningTemplate])
async def list_templates(
    tenant_id: str,
    active_only: bool = True,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.list_templates(tenant_id, active_only=active_only)


@router.post("/templates", response_model=ScreeningTemplate, status_code=201)
async def create_template(
    tenant_id: str,
    body: ScreeningTemplateCreate,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    return await service.create_template(tenant_id, body)


@router.post("/templates/default", response_model=ScreeningTemplate, status_code=201)
async def install_default_template(
    tenant_id: str,
    body: DefaultTemplateRequest,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    try:
        template = await service.install_default_template(
            tenant_id, body.questionnaire_template_id, body.question_ids, name=body.name,
        )
    except ValueError as e:
        raise HTTPException(422, str(e))
    logger.info("default_template_requested", tenant_id=tenant_id, installed_by=caller_id(token))
    return template


@router.get("/templates/{template_id}", response_model=ScreeningTemplate)
async def get_template(
    tenant_id: str,
    template_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    template = await service.get_screening_template(template_id, tenant_id)
    if template is None:
        raise HTTPException(404, f"Screening template {template_id} not found")
    return template


@router.put("/templates/{template_id}", response_model=ScreeningTemplate)
async def update_template(
    tenant_id: str,
    template_id: str,
    body: ScreeningTemplateUpdate,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    if not body.model_dump(exclude_unset=True):
        raise HTTPException(400, "No fields to update")
    try:
        return await versions.update_screening_template(
            template_id, tenant_id, body, changed_by=caller_id(token),
        )
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(
    tenant_id: str,
    template_id: str,
    token: dict = Depends(verify_token),
    service: ScreeningService = Depends(get_screening_service),
):
    try:
        await service.delete_template(template_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    return Response(status_code=204)
