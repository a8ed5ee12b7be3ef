"""
Screening service — resolves templates and rules for a tenant, runs the
pure engine, persists and publishes the result.

Also owns rule / template / lead-qualification-rule management. Template
edits go through app.services.template_versions so they are versioned.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Optional

import structlog

from app.core.exceptions import (
    QualificationRuleNotFoundError,
    ResultNotFoundError,
    RuleNotFoundError,
    TemplateNotFoundError,
)
from app.schemas.lead_qualification import (
    LeadQualificationRule,
    LeadQualificationRuleCreate,
    LeadQualificationRuleUpdate,
    QualificationDecision,
)
from app.schemas.questionnaire import QuestionnaireResponse
from app.schemas.screening_result import EnhancedScreeningResult
from app.schemas.screening_rule import ScreeningRule, ScreeningRuleCreate, ScreeningRuleUpdate
from app.schemas.screening_template import ScreeningTemplate, ScreeningTemplateCreate
from app.scoring.defaults import default_output_config, default_scoring_config, default_solar_rules
from app.scoring.engine import (
    ENGINE_VERSION,
    Clock,
    IdFactory,
    evaluate_screening,
    new_id,
    select_applicable_rules,
    utc_now,
)
from app.scoring.lead_qualification import (
    blend_lead_score,
    match_qualification_rule,
    qualification_actions,
)
from app.services.event_publisher import publish_screening_event
from app.services.template_versions import TemplateVersionManager

logger = structlog.get_logger()

# fields a rule update may clear by sending null
NULLABLE_RULE_FIELDS = {"description", "thresholds"}

# qualification rule fields an update cannot clear
REQUIRED_QUALIFICATION_FIELDS = {"name", "is_active", "rule_order"}

Publisher = Callable[[EnhancedScreeningResult], Awaitable[None]]


class ScreeningService:

    def __init__(
        self,
        repo,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        publisher: Publisher = publish_screening_event,
        engine_version: str = ENGINE_VERSION,
        versions: Optional[TemplateVersionManager] = None,
    ):
        self.repo = repo
        self.clock = clock
        self.id_factory = id_factory
        self.publisher = publisher
        self.engine_version = engine_version
        self.versions = versions or TemplateVersionManager(repo, clock=clock, id_factory=id_factory)

    # ═══════════════════════════════════════════════════════════
    # Screening
    # ═══════════════════════════════════════════════════════════

    async def process_screening(
        self,
        tenant_id: str,
        response: QuestionnaireResponse,
        template_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> EnhancedScreeningResult:
        # ── Step 1: Template ──
        if template_id:
            template = await self.get_screening_template(template_id, tenant_id)
        else:
            template = await self.repo.find_default_template(tenant_id, response.template_id)
        if template is None:
            raise TemplateNotFoundError("No screening template found")

        # ── Step 2: Rules ──
        rules = select_applicable_rules(template, await self.repo.list_rules(tenant_id, active_only=True))

        logger.info(
            "screening_started",
            tenant_id=tenant_id,
            response_id=response.id,
            template_id=template.id,
            template_version=template.version,
            rules=len(rules),
        )

        # ── Step 3: Score ──
        result = evaluate_screening(
            tenant_id,
            response,
            template,
            rules,
            lead_id=lead_id,
            clock=self.clock,
            id_factory=self.id_factory,
            engine_version=self.engine_version,
        )

        # ── Step 4: Persist + publish ──
        await self.repo.insert_result(result)
        await self.repo.commit()
        await self.publisher(result)
        return result

    async def get_screening_result(self, result_id: str, tenant_id: str) -> EnhancedScreeningResult:
        result = await self.repo.get_result(result_id, tenant_id)
        if result is None:
            raise ResultNotFoundError(f"Screening result {result_id} not found")
        return result

    async def list_screening_results(
        self, tenant_id: str, template_id: Optional[str] = None, limit: int = 50,
    ) -> list[EnhancedScreeningResult]:
        return await self.repo.list_results(tenant_id, template_id=template_id, limit=limit)

    # ═══════════════════════════════════════════════════════════
    # Rules
    # ═══════════════════════════════════════════════════════════

    async def create_rule(self, tenant_id: str, data: ScreeningRuleCreate) -> ScreeningRule:
        now = self.clock()
        rule = ScreeningRule(
            **data.model_dump(),
            id=self.id_factory(),
            tenant_id=tenant_id,
            created_at=now,
            updated_at=now,
        )
        await self.repo.insert_rule(rule)
        await self.repo.commit()
        logger.info("screening_rule_created", tenant_id=tenant_id, rule_id=rule.id, rule_type=rule.rule_type.value)
        return rule

    async def list_rules(self, tenant_id: str, active_only: bool = True) -> list[ScreeningRule]:
        return await self.repo.list_rules(tenant_id, active_only=active_only)

    async def update_rule(
        self,
        rule_id: str,
        tenant_id: str,
        changes: ScreeningRuleUpdate,
        changed_by: Optional[str] = None,
    ) -> ScreeningRule:
        """
        Applies the edit and versions every active template that uses the
        rule, so results scored before the edit show up as inconsistent.
        """
        rule = await self.repo.get_rule(rule_id, tenant_id)
        if rule is None:
            raise RuleNotFoundError(f"Screening rule {rule_id} not found")

        data = rule.model_dump()
        data.update({
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_RULE_FIELDS
        })
        data["updated_at"] = self.clock()
        updated = ScreeningRule.model_validate(data)

        await self.repo.save_rule(updated)
        versions = await self.versions.version_templates_using_rule(rule, updated, changed_by=changed_by)
        await self.repo.commit()
        logger.info(
            "screening_rule_updated",
            tenant_id=tenant_id,
            rule_id=rule_id,
            template_versions=[v.version for v in versions],
        )
        return updated

    async def delete_rule(self, rule_id: str, tenant_id: str) -> None:
        if not await self.repo.delete_rule(rule_id, tenant_id):
            raise RuleNotFoundError(f"Screening rule {rule_id} not found")
        await self.repo.commit()
        logger.info("screening_rule_deleted", tenant_id=tenant_id, rule_id=rule_id)

    # ═══════════════════════════════════════════════════════════
    # Templates
    # ═══════════════════════════════════════════════════════════

    async def create_template(self, tenant_id: str, data: ScreeningTemplateCreate) -> ScreeningTemplate:
        now = self.clock()
        template = ScreeningTemplate(
            **data.model_dump(),
            id=self.id_factory(),
            tenant_id=tenant_id,
            created_at=now,
            updated_at=now,
        )
        await self.repo.insert_template(template)
        await self.repo.commit()
        logger.info("screening_template_created", tenant_id=tenant_id, template_id=template.id)
        return template

    async def get_screening_template(self, template_id: str, tenant_id: str) -> Optional[ScreeningTemplate]:
        return await self.repo.get_template(template_id, tenant_id)

    async def list_templates(self, tenant_id: str, active_only: bool = True) -> list[ScreeningTemplate]:
        return await self.repo.list_templates(tenant_id, active_only=active_only)

    async def delete_template(self, template_id: str, tenant_id: str) -> None:
        if not await self.repo.delete_template(template_id, tenant_id):
            raise TemplateNotFoundError(f"Screening template {template_id} not found")
        await self.repo.commit()
        logger.info("screening_template_deleted", tenant_id=tenant_id, template_id=template_id)

    async def install_default_template(
        self,
        tenant_id: str,
        questionnaire_template_id: str,
        question_ids: dict[str, str],
        name: str = "Solar Project Screening",
    ) -> ScreeningTemplate:
        """Creates the default solar rules and a template that references them."""
        try:
            rule_specs = default_solar_rules(question_ids)
        except KeyError as e:
            raise ValueError(e.args[0]) from e

        now = self.clock()
        rule_ids = []
        for spec in rule_specs:
            rule = ScreeningRule(
                **spec.model_dump(),
                id=self.id_factory(),
                tenant_id=tenant_id,
                created_at=now,
                updated_at=now,
            )
            await self.repo.insert_rule(rule)
            rule_ids.append(rule.id)

        template = ScreeningTemplate(
            id=self.id_factory(),
            tenant_id=tenant_id,
            questionnaire_template_id=questionnaire_template_id,
            name=name,
            description="Default solar project screening",
            screening_rules=rule_ids,
            scoring_config=default_scoring_config(),
            output_config=default_output_config(question_ids),
            created_at=now,
            updated_at=now,
        )
        await self.repo.insert_template(template)
        await self.repo.commit()

        logger.info(
            "default_screening_template_installed",
            tenant_id=tenant_id,
            template_id=template.id,
            rules=len(rule_ids),
        )
        return template

    # ═══════════════════════════════════════════════════════════
    # Lead qualification
    # ═══════════════════════════════════════════════════════════

    async def create_qualification_rule(
        self, tenant_id: str, data: LeadQualificationRuleCreate,
    ) -> LeadQualificationRule:
        rule = LeadQualificationRule(**data.model_dump(), id=self.id_factory(), tenant_id=tenant_id)
        await self.repo.insert_qualification_rule(rule)
        await self.repo.commit()
        return rule

    async def list_qualification_rules(self, tenant_id: str) -> list[LeadQualificationRule]:
        return await self.repo.list_qualification_rules(tenant_id, active_only=False)

    async def update_qualification_rule(
        self, rule_id: str, tenant_id: str, changes: LeadQualificationRuleUpdate,
    ) -> LeadQualificationRule:
        rule = await self.repo.get_qualification_rule(rule_id, tenant_id)
        if rule is None:
            raise QualificationRuleNotFoundError(f"Lead qualification rule {rule_id} not found")

        data = rule.model_dump()
        data.update({
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or field not in REQUIRED_QUALIFICATION_FIELDS
        })
        updated = LeadQualificationRule.model_validate(data)

        await self.repo.save_qualification_rule(updated)
        await self.repo.commit()
        logger.info("qualification_rule_updated", tenant_id=tenant_id, rule_id=rule_id)
        return updated

    async def delete_qualification_rule(self, rule_id: str, tenant_id: str) -> None:
        if not await self.repo.delete_qualification_rule(rule_id, tenant_id):
            raise QualificationRuleNotFoundError(f"Lead qualification rule {rule_id} not found")
        await self.repo.commit()
        logger.info("qualification_rule_deleted", tenant_id=tenant_id, rule_id=rule_id)

    async def qualify_result(
        self, result_id: str, tenant_id: str, crm_lead_score: Optional[float] = None,
    ) -> QualificationDecision:
        result = await self.get_screening_result(result_id, tenant_id)
        rules = await self.repo.list_qualification_rules(tenant_id, active_only=True)
        matched = match_qualification_rule(result, rules)

        lead_score = None
        if crm_lead_score is not None:
            lead_score = blend_lead_score(crm_lead_score, result.percentage_score)

        if matched is not None:
            decision = QualificationDecision(
                result_id=result.id,
                lead_id=result.lead_id,
                qualification_level=result.qualification_level,
                matched_rule_id=matched.id,
                matched_rule_name=matched.name,
                stage_id=matched.auto_assign_stage_id,
                status=matched.auto_assign_status,
                priority=matched.auto_assign_priority,
                assigned_user_id=matched.auto_assign_user_id,
                lead_score=lead_score,
            )
        else:
            status, priority = qualification_actions(result.qualification_level, result.feasibility_rating)
            decision = QualificationDecision(
                result_id=result.id,
                lead_id=result.lead_id,
                qualification_level=result.qualification_level,
                status=status,
                priority=priority,
                lead_score=lead_score,
            )

        logger.info(
            "lead_qualification_decided",
            tenant_id=tenant_id,
            result_id=result.id,
            lead_id=result.lead_id,
            matched_rule_id=decision.matched_rule_id,
            status=decision.status.value if decision.status else None,
        )
        return decision
