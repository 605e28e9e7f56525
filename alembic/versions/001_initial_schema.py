"""Initial schema for CarbonFlow.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # Financial models
    op.create_table(
        "financial_models",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000)),
        sa.Column("start_year", sa.Integer, nullable=False),
        sa.Column("end_year", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Inputs, one row per key and year
    op.create_table(
        "model_inputs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("model_id", sa.Uuid, sa.ForeignKey("financial_models.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("input_key", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer),
        sa.Column("input_value", JSON_TYPE),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("model_id", "category", "input_key", "year", name="uq_model_input"),
    )
    op.create_index("ix_model_inputs_model_id", "model_inputs", ["model_id"])

    # Saved scenarios
    op.create_table(
        "model_scenarios",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("model_id", sa.Uuid, sa.ForeignKey("financial_models.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scenario_name", sa.String(255), nullable=False),
        sa.Column("is_base_case", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("probability", sa.Float),
        sa.Column("scenario_data", JSON_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_model_scenarios_model_id", "model_scenarios", ["model_id"])


def downgrade() -> None:
    op.drop_index("ix_model_scenarios_model_id", table_name="model_scenarios")
    op.drop_table("model_scenarios")
    op.drop_index("ix_model_inputs_model_id", table_name="model_inputs")
    op.drop_table("model_inputs")
    op.drop_table("financial_models")
