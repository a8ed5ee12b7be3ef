"""
Template version control API.

  GET/POST /templates/{id}/versions       → history / publish a snapshot
  GET      /templates/{id}/versions/compare?from_version=&to_version=
  POST     /templates/{id}/revert
  GET      /templates/{id}/changes
  GET/POST /templates/{id}/consistency    → assessment consistency checks
"""
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_version_manager
from app.core.auth import caller_id, verify_token
from app.core.exceptions import NOT_FOUND_ERRORS
from app.schemas.screening_template import (
    ConsistencyCheck,
    ConsistencyCheckRequest,
    RevertRequest,
    TemplateChange,
    TemplateVersion,
    VersionComparison,
    VersionCreateRequest,
)
from app.services.template_versions import TemplateVersionManager

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/tenants/{tenant_id}/screening/templates/{template_id}", tags=["versions"])


@router.get("/versions", response_model=list[TemplateVersion])
async def list_versions(
    tenant_id: str,
    template_id: str,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.get_template_version_history(template_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.post("/versions", response_model=TemplateVersion, status_code=201)
async def create_version(
    tenant_id: str,
    template_id: str,
    body: VersionCreateRequest,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.create_template_version(
            template_id,
            tenant_id,
            version_notes=body.version_notes,
            created_by=caller_id(token),
            auto_increment=body.auto_increment,
        )
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.get("/versions/compare", response_model=VersionComparison)
async def compare_versions(
    tenant_id: str,
    template_id: str,
    from_version: str = Query(..., pattern=r"^\d+\.\d+$"),
    to_version: str = Query(..., pattern=r"^\d+\.\d+$"),
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.compare_template_versions(template_id, tenant_id, from_version, to_version)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.post("/revert", response_model=TemplateVersion, status_code=201)
async def revert_template(
    tenant_id: str,
    template_id: str,
    body: RevertRequest,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    user = caller_id(token)
    try:
        version = await versions.revert_to_version(
            template_id, tenant_id, body.target_version,
            revert_notes=body.revert_notes, reverted_by=user,
        )
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    logger.info("template_revert_requested", template_id=template_id, reverted_by=user)
    return version


@router.get("/changes", response_model=list[TemplateChange])
async def list_changes(
    tenant_id: str,
    template_id: str,
    version_id: Optional[str] = None,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.get_template_changes(template_id, tenant_id, version_id=version_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))


@router.post("/consistency", response_model=ConsistencyCheck, status_code=201)
async def check_consistency(
    tenant_id: str,
    template_id: str,
    body: ConsistencyCheckRequest,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.check_assessment_consistency(
            template_id, tenant_id, body.period_start, body.period_end,
        )
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.get("/consistency", response_model=list[ConsistencyCheck])
async def consistency_history(
    tenant_id: str,
    template_id: str,
    token: dict = Depends(verify_token),
    versions: TemplateVersionManager = Depends(get_version_manager),
):
    try:
        return await versions.get_consistency_history(template_id, tenant_id)
    except NOT_FOUND_ERRORS as e:
        raise HTTPException(404, str(e))
