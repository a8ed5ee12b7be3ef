"""
003 — Lead qualification rules

Revision ID: 003
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None

SCHEMA = "solar_screening"


def upgrade() -> None:
    op.create_table(
        "screening_lead_qualification_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),

        # Criteria
        sa.Column("min_screening_score", sa.Float, nullable=True),
        sa.Column("required_feasibility", JSON, nullable=True),
        sa.Column("max_risk_level", sa.String(20), nullable=True),
        sa.Column("required_qualification", JSON, nullable=True),

        # Actions
        sa.Column("auto_assign_stage_id", sa.String(36), nullable=True),
        sa.Column("auto_assign_status", sa.String(20), nullable=True),
        sa.Column("auto_assign_priority", sa.String(10), nullable=True),
        sa.Column("auto_assign_user_id", sa.String(36), nullable=True),

        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("rule_order", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint(
            "min_screening_score IS NULL OR (min_screening_score >= 0 AND min_screening_score <= 100)",
            name="ck_min_screening_score_range",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_screening_lead_qualification_rules_tenant_id",
        "screening_lead_qualification_rules", ["tenant_id"], schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("screening_lead_qualification_rules", schema=SCHEMA)
