"""
Template Version Manager

Version snapshots and change log entries are append-only: creating,
editing or reverting a template only ever adds rows. The live template
points at its latest snapshot through parent_version_id / version_number.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import structlog

from app.core.config import get_settings
from app.core.exceptions import TemplateNotFoundError, VersionNotFoundError
from app.schemas.screening_rule import ScreeningRule
from app.schemas.screening_template import (
    ChangeType,
    ConsistencyCheck,
    ResolutionStatus,
    ScreeningTemplate,
    ScreeningTemplateUpdate,
    TemplateChange,
    TemplateVersion,
    VersionComparison,
)
from app.scoring.consistency import summarize_consistency
from app.scoring.engine import Clock, IdFactory, new_id, utc_now
from app.scoring.versioning import (
    FieldChange,
    compare_versions,
    diff_template_fields,
    requires_new_version,
    version_string,
)

logger = structlog.get_logger()

# fields a template update may clear by sending null
NULLABLE_TEMPLATE_FIELDS = {"description"}

# rule fields that do not affect scoring
RULE_METADATA_FIELDS = {"name", "description", "created_at", "updated_at"}

AFFECTED_RESULTS_LIMIT = 100


class TemplateVersionManager:

    def __init__(
        self,
        repo,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        consistency_threshold_pct: Optional[float] = None,
    ):
        self.repo = repo
        self.clock = clock
        self.id_factory = id_factory
        if consistency_threshold_pct is None:
            consistency_threshold_pct = get_settings().consistency_threshold_pct
        self.consistency_threshold_pct = consistency_threshold_pct

    async def _template(self, template_id: str, tenant_id: str) -> ScreeningTemplate:
        template = await self.repo.get_template(template_id, tenant_id)
        if template is None:
            raise TemplateNotFoundError("Template not found")
        return template

    # ═══════════════════════════════════════════════════════════
    # Versions
    # ═══════════════════════════════════════════════════════════

    async def create_template_version(
        self,
        template_id: str,
        tenant_id: str,
        version_notes: Optional[str] = None,
        created_by: Optional[str] = None,
        auto_increment: bool = True,
    ) -> TemplateVersion:
        template = await self._template(template_id, tenant_id)
        version, _ = await self._snapshot(template, version_notes, created_by, auto_increment)
        await self._log_change(
            template, version.id,
            FieldChange(ChangeType.CREATE, None, None, {"version": version.version},
                        f"Created version {version.version}"),
            changed_by=created_by,
            change_reason=version_notes,
        )
        await self.repo.commit()
        return version

    async def _snapshot(
        self,
        template: ScreeningTemplate,
        version_notes: Optional[str],
        created_by: Optional[str],
        auto_increment: bool = True,
    ) -> tuple[TemplateVersion, ScreeningTemplate]:
        """Inserts a snapshot of `template` and repoints the live template at it. No commit."""
        if auto_increment:
            number = await self.repo.max_version_number(template.id, template.tenant_id) + 1
            version_str = version_string(template.version, number)
        else:
            number = template.version_number
            version_str = template.version
            if await self.repo.get_version(template.id, template.tenant_id, version_str) is not None:
                raise ValueError(f"Version {version_str} already exists")

        now = self.clock()
        version = TemplateVersion(
            id=self.id_factory(),
            template_id=template.id,
            tenant_id=template.tenant_id,
            version=version_str,
            version_number=number,
            name=template.name,
            description=template.description,
            questionnaire_template_id=template.questionnaire_template_id,
            screening_rules=list(template.screening_rules),
            scoring_config=template.scoring_config.model_copy(deep=True),
            output_config=template.output_config.model_copy(deep=True),
            version_notes=version_notes,
            created_by=created_by,
            created_at=now,
        )
        await self.repo.insert_version(version)

        published = template.model_copy(update={
            "version": version_str,
            "version_number": number,
            "parent_version_id": version.id,
            "published_at": now,
            "updated_at": now,
        })
        await self.repo.save_template(published)

        logger.info(
            "template_version_created",
            tenant_id=template.tenant_id,
            template_id=template.id,
            version=version_str,
            version_number=number,
            created_by=created_by,
        )
        return version, published

    async def _snapshot_initial(self, template: ScreeningTemplate, created_by: Optional[str]) -> None:
        """
        Snapshots a never-versioned template as it stands, so results already
        scored under its initial version number stay distinguishable from the
        next version. No commit.
        """
        if template.parent_version_id is not None:
            return
        await self._snapshot(template, "Initial version", created_by)

    async def version_templates_using_rule(
        self,
        before: ScreeningRule,
        after: ScreeningRule,
        changed_by: Optional[str] = None,
    ) -> list[TemplateVersion]:
        """
        Records a new version of every active template that references the
        edited rule, with one config_change entry per changed rule field.
        Rule edits change how those templates score. No commit.
        """
        old = before.model_dump(mode="json")
        new = after.model_dump(mode="json")
        changed = [f for f in new if f not in RULE_METADATA_FIELDS and old.get(f) != new.get(f)]
        if not changed:
            return []

        versions = []
        for template in await self.repo.list_templates(after.tenant_id, active_only=True):
            if after.id not in template.screening_rules:
                continue
            await self._snapshot_initial(template, changed_by)
            template = await self._template(template.id, template.tenant_id)

            notes = f"Rule {after.name} updated"
            version, published = await self._snapshot(template, notes, changed_by)
            for field_name in changed:
                await self._log_change(
                    published, version.id,
                    FieldChange(
                        ChangeType.CONFIG_CHANGE, f"rules.{after.id}.{field_name}",
                        old.get(field_name), new.get(field_name),
                        f"Rule {after.name}: {field_name} changed",
                    ),
                    changed_by=changed_by,
                    change_reason=notes,
                )
            versions.append(version)
        return versions

    async def get_template_version_history(self, template_id: str, tenant_id: str) -> list[TemplateVersion]:
        await self._template(template_id, tenant_id)
        return await self.repo.list_versions(template_id, tenant_id)

    async def compare_template_versions(
        self, template_id: str, tenant_id: str, from_version: str, to_version: str,
    ) -> VersionComparison:
        old = await self.repo.get_version(template_id, tenant_id, from_version)
        new = await self.repo.get_version(template_id, tenant_id, to_version)
        if old is None or new is None:
            raise VersionNotFoundError("Could not find both versions for comparison")
        return compare_versions(old, new)

    async def revert_to_version(
        self,
        template_id: str,
        tenant_id: str,
        target_version: str,
        revert_notes: Optional[str] = None,
        reverted_by: Optional[str] = None,
    ) -> TemplateVersion:
        """
        Copies the target snapshot onto the live template and records it as a
        new version. Earlier versions, including the target, are left as they are.
        """
        template = await self._template(template_id, tenant_id)
        target = await self.repo.get_version(template_id, tenant_id, target_version)
        if target is None:
            raise VersionNotFoundError(f"Version {target_version} not found")

        before = template.model_dump(mode="json")
        reverted = template.model_copy(update={
            "name": target.name,
            "description": target.description,
            "questionnaire_template_id": target.questionnaire_template_id,
            "screening_rules": list(target.screening_rules),
            "scoring_config": target.scoring_config.model_copy(deep=True),
            "output_config": target.output_config.model_copy(deep=True),
            "updated_at": self.clock(),
        })
        await self.repo.save_template(reverted)

        notes = f"Reverted to version {target_version}. {revert_notes or ''}".strip()
        version, _ = await self._snapshot(reverted, notes, reverted_by)

        for change in diff_template_fields(before, reverted.model_dump(mode="json")):
            await self._log_change(reverted, version.id, change, changed_by=reverted_by, change_reason=notes)
        await self.repo.commit()

        logger.info(
            "template_reverted",
            tenant_id=tenant_id,
            template_id=template_id,
            target_version=target_version,
            new_version=version.version,
        )
        return version

    # ═══════════════════════════════════════════════════════════
    # Edits + change log
    # ═══════════════════════════════════════════════════════════

    async def update_screening_template(
        self,
        template_id: str,
        tenant_id: str,
        changes: ScreeningTemplateUpdate,
        changed_by: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> ScreeningTemplate:
        """
        Applies the edit and records one change log entry per changed field
        (per rule id for rule list edits). Rule or configuration edits create
        a new version first; other edits attach to the current version.
        """
        template = await self._template(template_id, tenant_id)
        before = template.model_dump(mode="json")

        edits = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_TEMPLATE_FIELDS
        }
        data = template.model_dump()
        data.update(edits)
        data["updated_at"] = self.clock()
        updated = ScreeningTemplate.model_validate(data)

        field_changes = diff_template_fields(before, updated.model_dump(mode="json"))
        if not field_changes:
            return template

        await self.repo.save_template(updated)

        if requires_new_version(field_changes):
            await self._snapshot_initial(template, changed_by)
            version, updated = await self._snapshot(updated, change_reason or "Template updated", changed_by)
            version_id = version.id
        elif updated.parent_version_id is None:
            version, updated = await self._snapshot(updated, change_reason or "Template updated", changed_by)
            version_id = version.id
        else:
            version_id = updated.parent_version_id

        for change in field_changes:
            await self._log_change(
                updated, version_id, change, changed_by=changed_by, change_reason=change_reason,
            )
        await self.repo.commit()

        logger.info(
            "screening_template_updated",
            tenant_id=tenant_id,
            template_id=template_id,
            changes=len(field_changes),
            version=updated.version,
        )
        return updated

    async def get_template_changes(
        self, template_id: str, tenant_id: str, version_id: Optional[str] = None,
    ) -> list[TemplateChange]:
        await self._template(template_id, tenant_id)
        return await self.repo.list_changes(template_id, tenant_id, version_id=version_id)

    async def _log_change(
        self, template: ScreeningTemplate, version_id: str, change: FieldChange,
        changed_by: Optional[str] = None, change_reason: Optional[str] = None,
    ) -> TemplateChange:
        entry = TemplateChange(
            id=self.id_factory(),
            template_id=template.id,
            version_id=version_id,
            tenant_id=template.tenant_id,
            change_type=change.change_type,
            field_path=change.field_path,
            old_value=change.old_value,
            new_value=change.new_value,
            change_description=change.description,
            changed_by=changed_by,
            change_reason=change_reason,
            created_at=self.clock(),
        )
        return await self.repo.insert_change(entry)

    # ═══════════════════════════════════════════════════════════
    # Assessment consistency
    # ═══════════════════════════════════════════════════════════

    async def check_assessment_consistency(
        self,
        template_id: str,
        tenant_id: str,
        period_start: datetime,
        period_end: datetime,
    ) -> ConsistencyCheck:
        if period_end <= period_start:
            raise ValueError("Assessment period end must be after its start")

        template = await self._template(template_id, tenant_id)
        counts = await self.repo.count_results_by_version(template_id, tenant_id, period_start, period_end)
        summary = summarize_consistency(counts, template.version_number, self.consistency_threshold_pct)

        affected: list[str] = []
        if summary.inconsistent_assessments:
            affected = await self.repo.list_result_ids_outside_version(
                template_id, tenant_id, period_start, period_end,
                template.version_number, limit=AFFECTED_RESULTS_LIMIT,
            )

        check = ConsistencyCheck(
            id=self.id_factory(),
            tenant_id=tenant_id,
            template_id=template_id,
            version_id=template.parent_version_id,
            assessment_period_start=period_start,
            assessment_period_end=period_end,
            total_assessments=summary.total_assessments,
            consistent_assessments=summary.consistent_assessments,
            inconsistent_assessments=summary.inconsistent_assessments,
            consistency_percentage=summary.consistency_percentage,
            is_consistent=summary.is_consistent,
            inconsistency_reasons=summary.inconsistency_reasons,
            affected_results=affected,
            resolution_status=ResolutionStatus.RESOLVED if summary.is_consistent else ResolutionStatus.PENDING,
            created_at=self.clock(),
        )
        await self.repo.insert_consistency_check(check)
        await self.repo.commit()

        if not summary.is_consistent:
            logger.warning(
                "assessment_inconsistency_detected",
                tenant_id=tenant_id,
                template_id=template_id,
                consistency_percentage=summary.consistency_percentage,
                inconsistent=summary.inconsistent_assessments,
            )
        return check

    async def get_consistency_history(self, template_id: str, tenant_id: str) -> list[ConsistencyCheck]:
        await self._template(template_id, tenant_id)
        return await self.repo.list_consistency_checks(template_id, tenant_id)
