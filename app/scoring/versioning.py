"""
Template version arithmetic and structural diffs.

Version strings are "major.minor"; the integer version_number is the
authoritative, strictly increasing sequence per template. A new version
keeps the template's major part and uses the version number as minor part.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from app.schemas.screening_template import (
    ChangeType,
    TemplateVersion,
    VersionChange,
    VersionComparison,
    VersionComparisonSummary,
)


def version_string(current_version: str, version_number: int) -> str:
    major = current_version.split(".", 1)[0] or "1"
    return f"{major}.{version_number}"


def canonical_json(value: Any) -> str:
    """Serialization used for deep-equality of config snapshots."""
    return json.dumps(value, sort_keys=True, default=str)


def compare_versions(from_version: TemplateVersion, to_version: TemplateVersion) -> VersionComparison:
    changes: list[VersionChange] = []

    if from_version.name != to_version.name:
        changes.append(VersionChange(
            field="name",
            type="modified",
            old_value=from_version.name,
            new_value=to_version.name,
            description=f'Name changed from "{from_version.name}" to "{to_version.name}"',
        ))

    if from_version.description != to_version.description:
        changes.append(VersionChange(
            field="description",
            type="modified",
            old_value=from_version.description,
            new_value=to_version.description,
            description="Description updated",
        ))

    old_rules = from_version.screening_rules
    new_rules = to_version.screening_rules

    for rule_id in new_rules:
        if rule_id not in old_rules:
            changes.append(VersionChange(
                field="screening_rules",
                type="added",
                new_value=rule_id,
                description=f"Added screening rule: {rule_id}",
            ))

    for rule_id in old_rules:
        if rule_id not in new_rules:
            changes.append(VersionChange(
                field="screening_rules",
                type="removed",
                old_value=rule_id,
                description=f"Removed screening rule: {rule_id}",
            ))

    old_config = from_version.scoring_config.model_dump(mode="json")
    new_config = to_version.scoring_config.model_dump(mode="json")
    if canonical_json(old_config) != canonical_json(new_config):
        changes.append(VersionChange(
            field="scoring_config",
            type="modified",
            old_value=old_config,
            new_value=new_config,
            description="Scoring configuration updated",
        ))

    return VersionComparison(
        from_version=from_version.version,
        to_version=to_version.version,
        changes=changes,
        summary=VersionComparisonSummary(
            total_changes=len(changes),
            added_items=sum(1 for c in changes if c.type == "added"),
            removed_items=sum(1 for c in changes if c.type == "removed"),
            modified_items=sum(1 for c in changes if c.type == "modified"),
        ),
    )


# ═══════════════════════════════════════════════════════════════
# Change log entries for a live template edit
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FieldChange:
    change_type: ChangeType
    field_path: Optional[str]
    old_value: Any
    new_value: Any
    description: str


VERSIONED_FIELDS = ("screening_rules", "scoring_config", "output_config")


def diff_template_fields(old: dict[str, Any], new: dict[str, Any]) -> list[FieldChange]:
    """
    Change log entries between two JSON dumps of a template.
    Rule list edits are logged per rule id.
    """
    changes: list[FieldChange] = []

    if old.get("name") != new.get("name"):
        changes.append(FieldChange(
            ChangeType.UPDATE, "name", old.get("name"), new.get("name"),
            f'Template name changed from "{old.get("name")}" to "{new.get("name")}"',
        ))

    if old.get("description") != new.get("description"):
        changes.append(FieldChange(
            ChangeType.UPDATE, "description", old.get("description"), new.get("description"),
            "Template description updated",
        ))

    if old.get("questionnaire_template_id") != new.get("questionnaire_template_id"):
        changes.append(FieldChange(
            ChangeType.UPDATE, "questionnaire_template_id",
            old.get("questionnaire_template_id"), new.get("questionnaire_template_id"),
            "Linked questionnaire template changed",
        ))

    old_rules = old.get("screening_rules") or []
    new_rules = new.get("screening_rules") or []
    for rule_id in new_rules:
        if rule_id not in old_rules:
            changes.append(FieldChange(
                ChangeType.RULE_ADD, "screening_rules", None, rule_id,
                f"Added screening rule: {rule_id}",
            ))
    for rule_id in old_rules:
        if rule_id not in new_rules:
            changes.append(FieldChange(
                ChangeType.RULE_REMOVE, "screening_rules", rule_id, None,
                f"Removed screening rule: {rule_id}",
            ))

    for field_path, label in (("scoring_config", "Scoring"), ("output_config", "Output")):
        if canonical_json(old.get(field_path)) != canonical_json(new.get(field_path)):
            changes.append(FieldChange(
                ChangeType.CONFIG_CHANGE, field_path, old.get(field_path), new.get(field_path),
                f"{label} configuration updated",
            ))

    if old.get("is_active") != new.get("is_active"):
        activated = bool(new.get("is_active"))
        changes.append(FieldChange(
            ChangeType.ACTIVATION if activated else ChangeType.DEACTIVATION,
            "is_active", old.get("is_active"), new.get("is_active"),
            "Template activated" if activated else "Template deactivated",
        ))

    return changes


def requires_new_version(changes: list[FieldChange]) -> bool:
    return any(c.field_path in VERSIONED_FIELDS for c in changes)
