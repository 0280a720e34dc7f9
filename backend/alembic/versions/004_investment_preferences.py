"""Investment preferences for the investor directory.

Revision ID: 004
Revises: 003
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "investment_preferences",
        sa.Column("investor_id", sa.Integer(), primary_key=True),
        sa.Column("min_investment", sa.Numeric(15, 2), nullable=True),
        sa.Column("max_investment", sa.Numeric(15, 2), nullable=True),
        sa.Column("categories", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("regions", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column(
            "risk_level",
            sa.Enum("conservative", "moderate", "aggressive", name="risklevel"),
            nullable=False,
            server_default="moderate",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["investor_id"], ["parties.id"]),
    )


def downgrade() -> None:
    op.drop_table("investment_preferences")
    sa.Enum(name="risklevel").drop(op.get_bind(), checkfirst=True)
