"""Funding requests plus the shared thread documents and messages tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

THREAD_TYPES = ("connection", "partner_request", "funding_request")
GATED_DOC_TYPES = sa.text("doc_type IN ('final_agreement', 'payment_slip')")


def upgrade() -> None:
    op.create_table(
        "funding_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("seller_id", sa.Integer(), nullable=False),
        sa.Column("investor_id", sa.Integer(), nullable=True),
        sa.Column("requested_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("funded_amount", sa.Numeric(15, 2), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "funded", "rejected", name="fundingstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("admin_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["seller_id"], ["parties.id"]),
        sa.ForeignKeyConstraint(["investor_id"], ["parties.id"]),
        sa.UniqueConstraint("seller_id", "investor_id", name="uq_funding_requests_seller_investor"),
    )
    op.create_index("ix_funding_requests_seller_id", "funding_requests", ["seller_id"])
    op.create_index("ix_funding_requests_investor_id", "funding_requests", ["investor_id"])
    op.create_index("ix_funding_requests_status", "funding_requests", ["status"])

    thread_type = sa.Enum(*THREAD_TYPES, name="threadtype")

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("thread_id", sa.String(36), nullable=False),
        sa.Column("thread_type", thread_type, nullable=False),
        sa.Column("uploader_id", sa.Integer(), nullable=False),
        sa.Column("doc_type", sa.String(50), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["uploader_id"], ["parties.id"]),
    )
    op.create_index("ix_documents_thread", "documents", ["thread_type", "thread_id"])
    op.create_index("ix_documents_uploader_id", "documents", ["uploader_id"])
    op.create_index(
        "uq_documents_gated_type",
        "documents",
        ["thread_type", "thread_id", "doc_type"],
        unique=True,
        postgresql_where=GATED_DOC_TYPES,
        sqlite_where=GATED_DOC_TYPES,
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("thread_id", sa.String(36), nullable=False),
        sa.Column("thread_type", thread_type, nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("sender_type", sa.String(20), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["sender_id"], ["parties.id"]),
    )
    op.create_index("ix_messages_thread", "messages", ["thread_type", "thread_id", "created_at"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("documents")
    op.drop_table("funding_requests")
    sa.Enum(name="threadtype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="fundingstatus").drop(op.get_bind(), checkfirst=True)
