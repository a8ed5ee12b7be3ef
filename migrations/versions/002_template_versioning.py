"""
002 — Template versioning: version snapshots, change log, consistency checks

Versions and changes are append-only; nothing in the application updates
or deletes their rows.

Revision ID: 002
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

SCHEMA = "solar_screening"


def upgrade() -> None:
    op.create_table(
        "screening_template_versions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("template_id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("version", sa.String(20), nullable=False),
        sa.Column("version_number", sa.Integer, nullable=False),

        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("questionnaire_template_id", sa.String(36), nullable=False),
        sa.Column("screening_rules", JSON, nullable=False),
        sa.Column("scoring_config", JSON, nullable=False),
        sa.Column("output_config", JSON, nullable=False),

        sa.Column("version_notes", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.UniqueConstraint("template_id", "version", name="uq_template_version"),
        sa.UniqueConstraint("template_id", "version_number", name="uq_template_version_number"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_template_versions_template_id",
        "screening_template_versions", ["template_id"], schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_template_versions_tenant_id",
        "screening_template_versions", ["tenant_id"], schema=SCHEMA,
    )

    op.create_table(
        "screening_template_changes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("template_id", sa.String(36), nullable=False),
        sa.Column("version_id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("field_path", sa.String(100), nullable=True),
        sa.Column("old_value", JSON, nullable=True),
        sa.Column("new_value", JSON, nullable=True),
        sa.Column("change_description", sa.Text, nullable=True),
        sa.Column("changed_by", sa.String(100), nullable=True),
        sa.Column("change_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_template_changes_template_id",
        "screening_template_changes", ["template_id"], schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_template_changes_version_id",
        "screening_template_changes", ["version_id"], schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_template_changes_tenant_id",
        "screening_template_changes", ["tenant_id"], schema=SCHEMA,
    )

    op.create_table(
        "screening_assessment_consistency",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("template_id", sa.String(36), nullable=False),
        sa.Column("version_id", sa.String(36), nullable=True),
        sa.Column("assessment_period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assessment_period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_assessments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("consistent_assessments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("inconsistent_assessments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("consistency_percentage", sa.Float, nullable=False, server_default="100"),
        sa.Column("is_consistent", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("inconsistency_reasons", JSON, nullable=False),
        sa.Column("affected_results", JSON, nullable=False),
        sa.Column("resolution_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("assessment_period_end > assessment_period_start", name="ck_consistency_period"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_assessment_consistency_template_id",
        "screening_assessment_consistency", ["template_id"], schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_assessment_consistency_tenant_id",
        "screening_assessment_consistency", ["tenant_id"], schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("screening_assessment_consistency", schema=SCHEMA)
    op.drop_table("screening_template_changes", schema=SCHEMA)
    op.drop_table("screening_template_versions", schema=SCHEMA)
