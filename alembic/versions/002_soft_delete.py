"""Soft delete for models and scenarios.

Revision ID: 002_soft_delete
Revises: 001_initial
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa

revision = "002_soft_delete"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("financial_models", sa.Column("deleted_at", sa.DateTime(timezone=True)))
    op.create_index("ix_financial_models_deleted_at", "financial_models", ["deleted_at"])

    op.add_column("model_scenarios", sa.Column("deleted_at", sa.DateTime(timezone=True)))
    op.create_index("ix_model_scenarios_deleted_at", "model_scenarios", ["deleted_at"])


def downgrade() -> None:
    with op.batch_alter_table("model_scenarios") as batch:
        batch.drop_index("ix_model_scenarios_deleted_at")
        batch.drop_column("deleted_at")
    with op.batch_alter_table("financial_models") as batch:
        batch.drop_index("ix_financial_models_deleted_at")
        batch.drop_column("deleted_at")
