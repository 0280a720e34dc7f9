"""Attribution ledger: clicks, sales, commission rollups.

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clicks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("affiliate_id", sa.Integer(), nullable=False),
        sa.Column("source_ip", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["affiliate_id"], ["parties.id"]),
    )
    op.create_index("ix_clicks_product_id", "clicks", ["product_id"])
    op.create_index("ix_clicks_affiliate_id", "clicks", ["affiliate_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("affiliate_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["affiliate_id"], ["parties.id"]),
    )
    op.create_index("ix_sales_product_id", "sales", ["product_id"])
    op.create_index("ix_sales_affiliate_id", "sales", ["affiliate_id"])
    op.create_index("ix_sales_created_at", "sales", ["created_at"])

    op.create_table(
        "commission_rollups",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("affiliate_id", sa.Integer(), nullable=False),
        sa.Column("total_earned", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["affiliate_id"], ["parties.id"]),
    )
    # Conflict target of the per-sale rollup upsert
    op.create_index("ix_commission_rollups_affiliate_id", "commission_rollups", ["affiliate_id"], unique=True)


def downgrade() -> None:
    op.drop_table("commission_rollups")
    op.drop_table("sales")
    op.drop_table("clicks")
