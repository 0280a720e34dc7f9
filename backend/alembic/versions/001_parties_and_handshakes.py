"""Parties, affiliate profiles, connections and partner requests.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PARTY_ROLES = ("seller", "investor", "affiliate", "admin")
HANDSHAKE_STATUSES = ("pending", "accepted", "rejected")


def upgrade() -> None:
    op.create_table(
        "parties",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("role", sa.Enum(*PARTY_ROLES, name="partyrole"), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_parties_role", "parties", ["role"])

    op.create_table(
        "affiliate_profiles",
        sa.Column("party_id", sa.Integer(), primary_key=True),
        sa.Column("affiliate_code", sa.String(16), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", name="affiliatestatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("social_links", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["party_id"], ["parties.id"]),
    )
    op.create_index("ix_affiliate_profiles_affiliate_code", "affiliate_profiles", ["affiliate_code"], unique=True)
    op.create_index("ix_affiliate_profiles_status", "affiliate_profiles", ["status"])

    handshake_status = sa.Enum(*HANDSHAKE_STATUSES, name="handshakestatus")

    op.create_table(
        "connections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("seller_id", sa.Integer(), nullable=False),
        sa.Column("investor_id", sa.Integer(), nullable=False),
        sa.Column("status", handshake_status, nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["seller_id"], ["parties.id"]),
        sa.ForeignKeyConstraint(["investor_id"], ["parties.id"]),
        sa.UniqueConstraint("seller_id", "investor_id", name="uq_connections_seller_investor"),
    )
    op.create_index("ix_connections_seller_id", "connections", ["seller_id"])
    op.create_index("ix_connections_investor_id", "connections", ["investor_id"])
    op.create_index("ix_connections_status", "connections", ["status"])

    op.create_table(
        "partner_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("seller_id", sa.Integer(), nullable=False),
        sa.Column("affiliate_user_id", sa.Integer(), nullable=False),
        sa.Column("status", handshake_status, nullable=False, server_default="pending"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["seller_id"], ["parties.id"]),
        sa.ForeignKeyConstraint(["affiliate_user_id"], ["parties.id"]),
        sa.UniqueConstraint("seller_id", "affiliate_user_id", name="uq_partner_requests_seller_affiliate"),
    )
    op.create_index("ix_partner_requests_seller_id", "partner_requests", ["seller_id"])
    op.create_index("ix_partner_requests_affiliate_user_id", "partner_requests", ["affiliate_user_id"])
    op.create_index("ix_partner_requests_status", "partner_requests", ["status"])


def downgrade() -> None:
    op.drop_table("partner_requests")
    op.drop_table("connections")
    op.drop_table("affiliate_profiles")
    op.drop_table("parties")
    sa.Enum(name="handshakestatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="affiliatestatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="partyrole").drop(op.get_bind(), checkfirst=True)
