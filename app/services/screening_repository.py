"""
Tenant-scoped persistence for the screening engine.

Wraps an AsyncSession; every statement filters by tenant_id. Methods that
write only flush; the calling service commits once per operation, so a
screening run or a version revert is stored atomically.

"Not found" on single-row reads is returned as None; every other database
error propagates to the caller unchanged.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.screening import (
    ConsistencyCheckRow,
    LeadQualificationRuleRow,
    ScreeningResultRow,
    ScreeningRuleRow,
    ScreeningTemplateRow,
    TemplateChangeRow,
    TemplateVersionRow,
)
from app.schemas.lead_qualification import LeadQualificationRule
from app.schemas.screening_result import EnhancedScreeningResult
from app.schemas.screening_rule import ScreeningRule
from app.schemas.screening_template import (
    ConsistencyCheck,
    ScreeningTemplate,
    TemplateChange,
    TemplateVersion,
)

RULE_FIELDS = (
    "id", "tenant_id", "name", "description", "rule_type", "category", "conditions",
    "scoring", "thresholds", "recommendations", "risk_factors", "is_active", "priority",
    "created_at", "updated_at",
)
TEMPLATE_FIELDS = (
    "id", "tenant_id", "questionnaire_template_id", "name", "description", "version",
    "version_number", "parent_version_id", "published_at", "screening_rules",
    "scoring_config", "output_config", "is_active", "created_at", "updated_at",
)
VERSION_FIELDS = (
    "id", "template_id", "tenant_id", "version", "version_number", "name", "description",
    "questionnaire_template_id", "screening_rules", "scoring_config", "output_config",
    "version_notes", "created_by", "created_at",
)
CHANGE_FIELDS = (
    "id", "template_id", "version_id", "tenant_id", "change_type", "field_path",
    "old_value", "new_value", "change_description", "changed_by", "change_reason", "created_at",
)
CONSISTENCY_FIELDS = (
    "id", "tenant_id", "template_id", "version_id", "assessment_period_start",
    "assessment_period_end", "total_assessments", "consistent_assessments",
    "inconsistent_assessments", "consistency_percentage", "is_consistent",
    "inconsistency_reasons", "affected_results", "resolution_status", "created_at",
)
QUALIFICATION_RULE_FIELDS = (
    "id", "tenant_id", "name", "description", "min_screening_score", "required_feasibility",
    "max_risk_level", "required_qualification", "auto_assign_stage_id", "auto_assign_status",
    "auto_assign_priority", "auto_assign_user_id", "is_active", "rule_order",
)

# datetime fields are kept as objects; everything else is stored as JSON-safe values
_DATETIME_FIELDS = {
    "created_at", "updated_at", "published_at", "assessment_period_start", "assessment_period_end",
}


def _row_values(model, fields: tuple[str, ...]) -> dict:
    data = model.model_dump(mode="json")
    for name in _DATETIME_FIELDS.intersection(fields):
        data[name] = getattr(model, name)
    return {name: data[name] for name in fields}


def _row_dict(row, fields: tuple[str, ...]) -> dict:
    return {name: getattr(row, name) for name in fields}


class ScreeningRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def _add(self, row) -> None:
        self.session.add(row)
        await self.session.flush()

    # ── Rules ──────────────────────────────────────────────────

    async def insert_rule(self, rule: ScreeningRule) -> ScreeningRule:
        await self._add(ScreeningRuleRow(**_row_values(rule, RULE_FIELDS)))
        return rule

    async def get_rule(self, rule_id: str, tenant_id: str) -> Optional[ScreeningRule]:
        row = await self._one(ScreeningRuleRow, rule_id, tenant_id)
        return ScreeningRule.model_validate(_row_dict(row, RULE_FIELDS)) if row else None

    async def list_rules(self, tenant_id: str, active_only: bool = True) -> list[ScreeningRule]:
        stmt = (
            select(ScreeningRuleRow)
            .where(ScreeningRuleRow.tenant_id == tenant_id)
            .order_by(ScreeningRuleRow.priority.asc())
        )
        if active_only:
            stmt = stmt.where(ScreeningRuleRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return [ScreeningRule.model_validate(_row_dict(r, RULE_FIELDS)) for r in result.scalars()]

    async def save_rule(self, rule: ScreeningRule) -> ScreeningRule:
        await self._save(ScreeningRuleRow, rule, RULE_FIELDS)
        return rule

    async def delete_rule(self, rule_id: str, tenant_id: str) -> bool:
        return await self._delete(ScreeningRuleRow, rule_id, tenant_id)

    # ── Templates ──────────────────────────────────────────────

    async def insert_template(self, template: ScreeningTemplate) -> ScreeningTemplate:
        await self._add(ScreeningTemplateRow(**_row_values(template, TEMPLATE_FIELDS)))
        return template

    async def get_template(self, template_id: str, tenant_id: str) -> Optional[ScreeningTemplate]:
        row = await self._one(ScreeningTemplateRow, template_id, tenant_id)
        return ScreeningTemplate.model_validate(_row_dict(row, TEMPLATE_FIELDS)) if row else None

    async def find_default_template(
        self, tenant_id: str, questionnaire_template_id: str,
    ) -> Optional[ScreeningTemplate]:
        """Newest active template linked to the questionnaire."""
        stmt = (
            select(ScreeningTemplateRow)
            .where(
                ScreeningTemplateRow.tenant_id == tenant_id,
                ScreeningTemplateRow.questionnaire_template_id == questionnaire_template_id,
                ScreeningTemplateRow.is_active.is_(True),
            )
            .order_by(ScreeningTemplateRow.created_at.desc())
            .limit(1)
        )
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return ScreeningTemplate.model_validate(_row_dict(row, TEMPLATE_FIELDS)) if row else None

    async def list_templates(self, tenant_id: str, active_only: bool = True) -> list[ScreeningTemplate]:
        stmt = (
            select(ScreeningTemplateRow)
            .where(ScreeningTemplateRow.tenant_id == tenant_id)
            .order_by(ScreeningTemplateRow.created_at.desc())
        )
        if active_only:
            stmt = stmt.where(ScreeningTemplateRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return [ScreeningTemplate.model_validate(_row_dict(r, TEMPLATE_FIELDS)) for r in result.scalars()]

    async def save_template(self, template: ScreeningTemplate) -> ScreeningTemplate:
        await self._save(ScreeningTemplateRow, template, TEMPLATE_FIELDS)
        return template

    async def delete_template(self, template_id: str, tenant_id: str) -> bool:
        return await self._delete(ScreeningTemplateRow, template_id, tenant_id)

    # ── Versions + changes (append-only) ───────────────────────

    async def insert_version(self, version: TemplateVersion) -> TemplateVersion:
        await self._add(TemplateVersionRow(**_row_values(version, VERSION_FIELDS)))
        return version

    async def list_versions(self, template_id: str, tenant_id: str) -> list[TemplateVersion]:
        stmt = (
            select(TemplateVersionRow)
            .where(TemplateVersionRow.template_id == template_id, TemplateVersionRow.tenant_id == tenant_id)
            .order_by(TemplateVersionRow.version_number.desc())
        )
        result = await self.session.execute(stmt)
        return [TemplateVersion.model_validate(_row_dict(r, VERSION_FIELDS)) for r in result.scalars()]

    async def get_version(self, template_id: str, tenant_id: str, version: str) -> Optional[TemplateVersion]:
        stmt = select(TemplateVersionRow).where(
            TemplateVersionRow.template_id == template_id,
            TemplateVersionRow.tenant_id == tenant_id,
            TemplateVersionRow.version == version,
        )
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return TemplateVersion.model_validate(_row_dict(row, VERSION_FIELDS)) if row else None

    async def max_version_number(self, template_id: str, tenant_id: str) -> int:
        stmt = select(func.max(TemplateVersionRow.version_number)).where(
            TemplateVersionRow.template_id == template_id,
            TemplateVersionRow.tenant_id == tenant_id,
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def insert_change(self, change: TemplateChange) -> TemplateChange:
        await self._add(TemplateChangeRow(**_row_values(change, CHANGE_FIELDS)))
        return change

    async def list_changes(
        self, template_id: str, tenant_id: str, version_id: Optional[str] = None,
    ) -> list[TemplateChange]:
        stmt = (
            select(TemplateChangeRow)
            .where(TemplateChangeRow.template_id == template_id, TemplateChangeRow.tenant_id == tenant_id)
            .order_by(TemplateChangeRow.created_at.desc())
        )
        if version_id:
            stmt = stmt.where(TemplateChangeRow.version_id == version_id)
        result = await self.session.execute(stmt)
        return [TemplateChange.model_validate(_row_dict(r, CHANGE_FIELDS)) for r in result.scalars()]

    # ── Results ────────────────────────────────────────────────

    async def insert_result(self, result: EnhancedScreeningResult) -> EnhancedScreeningResult:
        await self._add(ScreeningResultRow(
            id=result.id,
            tenant_id=result.tenant_id,
            response_id=result.response_id,
            template_id=result.template_id,
            template_version=result.template_version,
            template_version_number=result.template_version_number,
            lead_id=result.lead_id,
            total_score=result.total_score,
            max_possible_score=result.max_possible_score,
            percentage_score=result.percentage_score,
            feasibility_rating=result.feasibility_rating.value,
            qualification_level=result.qualification_level.value,
            risk_level=result.risk_level.value,
            follow_up_priority=result.follow_up_priority.value,
            result_payload=result.model_dump(mode="json"),
            created_at=result.created_at,
        ))
        return result

    async def get_result(self, result_id: str, tenant_id: str) -> Optional[EnhancedScreeningResult]:
        row = await self._one(ScreeningResultRow, result_id, tenant_id)
        return EnhancedScreeningResult.model_validate(row.result_payload) if row else None

    async def list_results(
        self, tenant_id: str, template_id: Optional[str] = None, limit: int = 50,
    ) -> list[EnhancedScreeningResult]:
        stmt = (
            select(ScreeningResultRow)
            .where(ScreeningResultRow.tenant_id == tenant_id)
            .order_by(ScreeningResultRow.created_at.desc())
            .limit(limit)
        )
        if template_id:
            stmt = stmt.where(ScreeningResultRow.template_id == template_id)
        result = await self.session.execute(stmt)
        return [EnhancedScreeningResult.model_validate(r.result_payload) for r in result.scalars()]

    async def count_results_by_version(
        self, template_id: str, tenant_id: str, start: datetime, end: datetime,
    ) -> dict[int, int]:
        """Aggregate of the period's results per template version number."""
        stmt = (
            select(ScreeningResultRow.template_version_number, func.count())
            .where(
                ScreeningResultRow.template_id == template_id,
                ScreeningResultRow.tenant_id == tenant_id,
                ScreeningResultRow.created_at.between(start, end),
            )
            .group_by(ScreeningResultRow.template_version_number)
        )
        result = await self.session.execute(stmt)
        return {version: count for version, count in result.all()}

    async def list_result_ids_outside_version(
        self, template_id: str, tenant_id: str, start: datetime, end: datetime,
        version_number: int, limit: int = 100,
    ) -> list[str]:
        stmt = (
            select(ScreeningResultRow.id)
            .where(
                ScreeningResultRow.template_id == template_id,
                ScreeningResultRow.tenant_id == tenant_id,
                ScreeningResultRow.created_at.between(start, end),
                ScreeningResultRow.template_version_number != version_number,
            )
            .order_by(ScreeningResultRow.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    # ── Consistency checks ─────────────────────────────────────

    async def insert_consistency_check(self, check: ConsistencyCheck) -> ConsistencyCheck:
        await self._add(ConsistencyCheckRow(**_row_values(check, CONSISTENCY_FIELDS)))
        return check

    async def list_consistency_checks(self, template_id: str, tenant_id: str) -> list[ConsistencyCheck]:
        stmt = (
            select(ConsistencyCheckRow)
            .where(ConsistencyCheckRow.template_id == template_id, ConsistencyCheckRow.tenant_id == tenant_id)
            .order_by(ConsistencyCheckRow.assessment_period_start.desc())
        )
        result = await self.session.execute(stmt)
        return [ConsistencyCheck.model_validate(_row_dict(r, CONSISTENCY_FIELDS)) for r in result.scalars()]

    # ── Lead qualification rules ───────────────────────────────

    async def insert_qualification_rule(self, rule: LeadQualificationRule) -> LeadQualificationRule:
        await self._add(LeadQualificationRuleRow(**_row_values(rule, QUALIFICATION_RULE_FIELDS)))
        return rule

    async def get_qualification_rule(self, rule_id: str, tenant_id: str) -> Optional[LeadQualificationRule]:
        row = await self._one(LeadQualificationRuleRow, rule_id, tenant_id)
        return LeadQualificationRule.model_validate(_row_dict(row, QUALIFICATION_RULE_FIELDS)) if row else None

    async def save_qualification_rule(self, rule: LeadQualificationRule) -> LeadQualificationRule:
        await self._save(LeadQualificationRuleRow, rule, QUALIFICATION_RULE_FIELDS)
        return rule

    async def delete_qualification_rule(self, rule_id: str, tenant_id: str) -> bool:
        return await self._delete(LeadQualificationRuleRow, rule_id, tenant_id)

    async def list_qualification_rules(
        self, tenant_id: str, active_only: bool = True,
    ) -> list[LeadQualificationRule]:
        stmt = (
            select(LeadQualificationRuleRow)
            .where(LeadQualificationRuleRow.tenant_id == tenant_id)
            .order_by(LeadQualificationRuleRow.rule_order.asc())
        )
        if active_only:
            stmt = stmt.where(LeadQualificationRuleRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return [
            LeadQualificationRule.model_validate(_row_dict(r, QUALIFICATION_RULE_FIELDS))
            for r in result.scalars()
        ]

    # ── Helpers ────────────────────────────────────────────────

    async def _one(self, model, row_id: str, tenant_id: str):
        stmt = select(model).where(model.id == row_id, model.tenant_id == tenant_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def _save(self, model, item, fields: tuple[str, ...]) -> None:
        row = await self._one(model, item.id, item.tenant_id)
        if row is None:
            raise LookupError(f"{model.__tablename__} row {item.id} not found")
        for name, value in _row_values(item, fields).items():
            setattr(row, name, value)
        await self.session.flush()

    async def _delete(self, model, row_id: str, tenant_id: str) -> bool:
        result = await self.session.execute(
            delete(model).where(model.id == row_id, model.tenant_id == tenant_id)
        )
        return result.rowcount > 0
