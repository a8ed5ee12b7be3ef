"""
001 — Initial schema: screening rules, templates and results

Revision ID: 001
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

SCHEMA = "solar_screening"


def upgrade() -> None:
    op.execute(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}")

    op.create_table(
        "screening_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("rule_type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),

        sa.Column("conditions", JSON, nullable=False),
        sa.Column("scoring", JSON, nullable=False),
        sa.Column("thresholds", JSON, nullable=True),
        sa.Column("recommendations", JSON, nullable=False),
        sa.Column("risk_factors", JSON, nullable=False),

        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        schema=SCHEMA,
    )
    op.create_index("ix_screening_rules_tenant_id", "screening_rules", ["tenant_id"], schema=SCHEMA)

    op.create_table(
        "screening_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("questionnaire_template_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),

        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("version_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("parent_version_id", sa.String(36), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("screening_rules", JSON, nullable=False),
        sa.Column("scoring_config", JSON, nullable=False),
        sa.Column("output_config", JSON, nullable=False),

        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        schema=SCHEMA,
    )
    op.create_index("ix_screening_templates_tenant_id", "screening_templates", ["tenant_id"], schema=SCHEMA)
    op.create_index(
        "ix_screening_templates_questionnaire_template_id",
        "screening_templates", ["questionnaire_template_id"], schema=SCHEMA,
    )

    op.create_table(
        "screening_results",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("response_id", sa.String(36), nullable=False),
        sa.Column("template_id", sa.String(36), nullable=False),
        sa.Column("template_version", sa.String(20), nullable=False),
        sa.Column("template_version_number", sa.Integer, nullable=False),
        sa.Column("lead_id", sa.String(36), nullable=True),

        sa.Column("total_score", sa.Float, nullable=False),
        sa.Column("max_possible_score", sa.Float, nullable=False),
        sa.Column("percentage_score", sa.Float, nullable=False),
        sa.Column("feasibility_rating", sa.String(20), nullable=False),
        sa.Column("qualification_level", sa.String(30), nullable=False),
        sa.Column("risk_level", sa.String(20), nullable=False),
        sa.Column("follow_up_priority", sa.String(10), nullable=False),

        sa.Column("result_payload", JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),

        schema=SCHEMA,
    )
    op.create_index("ix_screening_results_tenant_id", "screening_results", ["tenant_id"], schema=SCHEMA)
    op.create_index("ix_screening_results_response_id", "screening_results", ["response_id"], schema=SCHEMA)
    op.create_index("ix_screening_results_template_id", "screening_results", ["template_id"], schema=SCHEMA)
    op.create_index("ix_screening_results_lead_id", "screening_results", ["lead_id"], schema=SCHEMA)
    op.create_index("ix_screening_results_created_at", "screening_results", ["created_at"], schema=SCHEMA)


def downgrade() -> None:
    op.drop_table("screening_results", schema=SCHEMA)
    op.drop_table("screening_templates", schema=SCHEMA)
    op.drop_table("screening_rules", schema=SCHEMA)
